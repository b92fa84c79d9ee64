from .contract_cli import main

main()
