from nodekeeper.cli.main_cli import main

main()
