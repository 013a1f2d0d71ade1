from relnotes.cli.app import app

app()
