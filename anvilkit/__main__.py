from anvilkit.cli.main import cli

cli(obj={})
