"""Command-line front end for contract-guard."""

from .contract_cli import ContractCLI, main

__all__ = [
    "ContractCLI",
    "main",
]
