"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mdcorpus.cli.commands import scan_cmd, transform_cmd, validate_cmd


app = typer.Typer(name="mdcorpus", no_args_is_help=True, help="Markdown corpus link extraction, validation, and rewriting")

app.command(name="scan")(scan_cmd)
app.command(name="validate")(validate_cmd)
app.command(name="transform")(transform_cmd)
