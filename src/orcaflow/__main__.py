from orcaflow.cli import app

app(prog_name="orcaflow")
