from gitpublish.cli import cli_main

cli_main()
