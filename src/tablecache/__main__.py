from tablecache.cli.app import app

app()
