from beisetzer.cli.app import app

app()
