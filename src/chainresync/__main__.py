from chainresync.interface.cli import app

app(prog_name="chainresync")
