from unidb.cli.main import run

run()
