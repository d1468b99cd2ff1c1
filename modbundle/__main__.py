from modbundle.cli.main import cli

cli(obj={})
