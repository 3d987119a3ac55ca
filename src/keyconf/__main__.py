from keyconf.cli.main import run

run()
