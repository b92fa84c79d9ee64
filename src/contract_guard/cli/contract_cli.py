"""Command-line interface for contract-guard."""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from .. import __version__
from ..config import (
    DEFAULT_CONFIG_FILE,
    compare_setting,
    diff_options_from_config,
    extraction_options_from_config,
    load_config,
)
from ..diffing.api_differ import ContractDiffer
from ..introspection.api_extractor import ContractExtractor
from ..model.contract import Contract
from ..model.serialization import dumps_contract, load_contract, save_contract
from ..reporting.reporter import ChangeSetReporter
from ..utils.error_handling import (
    ContractFormatError,
    ContractGuardError,
    DiffError,
    format_user_error,
    format_user_warning,
)

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

COMMAND_ALIASES = {"diff": "compare"}


class ContractCLI:
    """Command-line interface for extracting and comparing API contracts."""

    def __init__(self):
        """Initialize the CLI."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            prog="contract-guard",
            description="API contract extraction and breaking-change detection",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Extract the contract of a package directory
  contract-guard extract ./src/mypackage -o contract.json

  # Extract the contract of an installed package
  contract-guard extract mypackage

  # Compare two contracts and print a Markdown report
  contract-guard compare old.json new.json --format markdown
            """
        )

        parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose output"
        )
        parser.add_argument(
            "--config",
            type=str,
            default=DEFAULT_CONFIG_FILE,
            help="Path to configuration file"
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        # Extract command
        extract_parser = subparsers.add_parser("extract", help="Extract API contract from a package")
        extract_parser.add_argument("package", help="Package directory, source file or importable package name")
        extract_parser.add_argument("--output", "-o", help="Output file (default: stdout; .yaml/.yml writes YAML)")
        extract_parser.add_argument("--include-private", action="store_true", default=None,
                                    help="Include unexported items")
        extract_parser.add_argument("--include-tests", action="store_true", default=None,
                                    help="Include test files")
        extract_parser.add_argument("--include-internal", action="store_true", default=None,
                                    help="Include internal packages")
        extract_parser.add_argument("--workers", type=int, dest="max_workers",
                                    help="Number of files parsed in parallel")

        # Compare command
        compare_parser = subparsers.add_parser("compare", aliases=["diff"], help="Compare two API contracts")
        compare_parser.add_argument("old", help="Old contract file")
        compare_parser.add_argument("new", help="New contract file")
        compare_parser.add_argument("--output", "-o", help="Output file (default: stdout)")
        compare_parser.add_argument("--format", dest="output_format",
                                    help="Output format: json, markdown, text (default: json)")
        compare_parser.add_argument("--ignore-positions", action=argparse.BooleanOptionalAction, default=None,
                                    help="Ignore source position changes (default: on)")
        compare_parser.add_argument("--ignore-comments", action="store_true", default=None,
                                    help="Ignore documentation comment changes")
        compare_parser.add_argument("--parameter-names-breaking", action="store_true", default=None,
                                    help="Report parameter renames as breaking")
        compare_parser.add_argument("--tag-changes-breaking", action="store_true", default=None,
                                    help="Report field tag changes as breaking")
        compare_parser.add_argument("--fail-on-breaking", action=argparse.BooleanOptionalAction, default=None,
                                    help="Exit with status 1 when breaking changes are found (default: on)")

        return parser

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI with given arguments.

        Args:
            args: Command line arguments (defaults to sys.argv)

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        parsed_args = self.parser.parse_args(args)

        if parsed_args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            config = load_config(parsed_args.config)

            command = COMMAND_ALIASES.get(parsed_args.command, parsed_args.command)
            handler = getattr(self, f"_handle_{command.replace('-', '_')}", None)

            if not handler:
                logger.error(f"Unknown command: {parsed_args.command}")
                return 1

            return handler(parsed_args, config)

        except (ContractGuardError, ValueError) as e:
            logger.error(f"Command failed: {e}")
            print(format_user_error(e), file=sys.stderr)
            if parsed_args.verbose:
                import traceback
                traceback.print_exc()
            return 1

    def _handle_extract(self, args, config: Dict[str, Any]) -> int:
        """Handle extract command."""
        options = extraction_options_from_config(config, {
            "include_private": args.include_private,
            "include_tests": args.include_tests,
            "include_internal": args.include_internal,
            "max_workers": args.max_workers,
        })

        logger.info(f"Extracting API contract from: {args.package}")
        extractor = ContractExtractor(options)
        contract = extractor.extract(args.package)

        if args.output:
            save_contract(contract, args.output)
            print(f"✅ API contract extracted and saved to {args.output}")
        else:
            sys.stdout.write(dumps_contract(contract))

        if args.verbose:
            self._print_contract_summary(contract)

        return 0

    def _handle_compare(self, args, config: Dict[str, Any]) -> int:
        """Handle compare command."""
        options = diff_options_from_config(config, {
            "ignore_positions": args.ignore_positions,
            "ignore_comments": args.ignore_comments,
            "parameter_names_breaking": args.parameter_names_breaking,
            "tag_changes_breaking": args.tag_changes_breaking,
        })
        output_format = compare_setting(config, "format", args.output_format, "json")
        fail_on_breaking = compare_setting(config, "fail_on_breaking", args.fail_on_breaking, True)

        reporter = ChangeSetReporter()
        output_format = reporter.normalize_format(output_format)

        logger.info(f"Comparing contracts: {args.old} -> {args.new}")
        old_contract = self._load_input(args.old, "old")
        new_contract = self._load_input(args.new, "new")

        change_set = ContractDiffer(options).compare(old_contract, new_contract)
        output = reporter.render(change_set, output_format)

        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
            print(f"✅ Contract diff saved to {args.output}")
        else:
            sys.stdout.write(output)

        summary = change_set.summary()
        if args.verbose:
            print("\n📊 Contract Diff Summary:", file=sys.stderr)
            print(f"  Breaking changes: {summary['breaking_changes']}", file=sys.stderr)
            print(f"  Additions: {summary['additions']}", file=sys.stderr)
            print(f"  Modifications: {summary['modifications']}", file=sys.stderr)
            bump = change_set.suggest_version_bump()
            print(f"  Suggested bump: {bump['suggested_bump'] or 'none'} ({bump['reason']})", file=sys.stderr)

        if summary["has_breaking_changes"]:
            print(format_user_warning("Breaking changes detected!"), file=sys.stderr)
            if fail_on_breaking:
                return 1

        return 0

    def _load_input(self, path: str, which: str) -> Contract:
        try:
            return load_contract(path)
        except ContractFormatError as e:
            raise DiffError(which, e.message) from e

    def _print_contract_summary(self, contract: Contract) -> None:
        print("Contract extracted successfully:", file=sys.stderr)
        print(f"  - Package: {contract.package_name}", file=sys.stderr)
        for category, count in contract.counts().items():
            print(f"  - {category.capitalize()}: {count}", file=sys.stderr)


def main():
    """Main entry point for the CLI."""
    cli = ContractCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
