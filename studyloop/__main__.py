from studyloop.cli.main import run

run()
