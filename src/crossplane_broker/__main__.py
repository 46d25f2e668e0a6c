from crossplane_broker.cli.main import cli_main

cli_main()
