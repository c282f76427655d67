from stashnav.cli.main import app

app(prog_name="stashnav")
