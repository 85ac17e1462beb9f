"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mdrender.cli.commands import languages_cmd, render_cmd, tree_cmd


app = typer.Typer(name="mdrender", no_args_is_help=True, help="Markdown to render-descriptor converter")

app.command(name="render")(render_cmd)
app.command(name="tree")(tree_cmd)
app.command(name="languages")(languages_cmd)
