from tap_cli.cli import main

main()
