"""
Command-line interface for pdftextx.
"""

import logging
import re
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pdftextx import __version__
from pdftextx.constants import DEFAULT_BUFFER_SIZE
from pdftextx.document import Document
from pdftextx.exceptions import PDFTextError
from pdftextx.extract import extract_page_text, extract_title, iter_page_text, search
from pdftextx.utils import format_file_size, get_logger

console = Console()


def _fail(error):
    console.print(f"\n[bold red]✗ Error:[/bold red] {escape(str(error))}", highlight=False)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """
    pdftextx - Extract text from PDF files without loading them into memory.
    """
    if verbose:
        get_logger("pdftextx", logging.DEBUG)


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
def show_info(input_pdf):
    """
    Display the structure of a PDF file.

    Example:

        pdftextx info input.pdf
    """
    try:
        with Document.open(input_pdf) as document:
            title_error = None
            try:
                title = extract_title(document)
            except PDFTextError as e:
                title = None
                title_error = e

            table = Table(title=f"PDF Information: {document.name}")
            table.add_column("Property", style="cyan", no_wrap=True)
            table.add_column("Value", style="green")

            table.add_row("File Size", format_file_size(document.file_size))
            table.add_row("PDF Version", document.version)
            table.add_row("Pages", str(document.page_count))
            table.add_row("Xref Tables", str(len(document.xref_tables)))
            table.add_row("Root Object", str(document.root_object_id))
            if title:
                table.add_row("Title", escape(title))
            elif title_error is not None:
                table.add_row("Title", f"unavailable: {escape(str(title_error))}")

            console.print()
            console.print(table)
            console.print()

    except (PDFTextError, OSError) as e:
        _fail(e)


@cli.command(name="text")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--page', '-p',
    default=None,
    help='Only extract this page (1-indexed)',
    type=click.IntRange(min=1)
)
@click.option(
    '--buffer-size',
    default=DEFAULT_BUFFER_SIZE,
    show_default=True,
    help='Size of the output buffer in bytes',
    type=click.IntRange(min=1)
)
def extract_text(input_pdf, page, buffer_size):
    """
    Print the text of a PDF file.

    Examples:

        pdftextx text input.pdf

        pdftextx text input.pdf --page 3
    """
    try:
        with Document.open(input_pdf) as document:
            if page is not None:
                text = extract_page_text(document, page, buffer_size)
                console.print(text, markup=False, highlight=False, soft_wrap=True)
                return

            for page_text in iter_page_text(document, buffer_size):
                if page_text.error is not None:
                    console.print(
                        f"[yellow]⚠ Page {page_text.page_number}:[/yellow] {escape(str(page_text.error))}",
                        highlight=False,
                    )
                    continue
                console.print(page_text.text, markup=False, highlight=False, soft_wrap=True)

    except (PDFTextError, OSError) as e:
        _fail(e)


@cli.command(name="grep")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--regexp', '-e',
    'pattern',
    required=True,
    help='Regular expression to search for',
    type=str
)
@click.option(
    '--ignore-case', '-i',
    is_flag=True,
    help='Match case-insensitively'
)
def grep(input_pdf, pattern, ignore_case):
    """
    Print the lines of a PDF file that match a regular expression.

    Example:

        pdftextx grep input.pdf -e "total: [0-9]+"
    """
    try:
        flags = re.IGNORECASE if ignore_case else 0
        compiled = re.compile(pattern, flags)
    except re.error as e:
        _fail(f"Invalid regular expression: {e}")

    try:
        with Document.open(input_pdf) as document:
            matches = 0
            for match in search(document, compiled):
                matches += 1
                console.print(
                    f"[cyan]{match.page_number}[/cyan]:[cyan]{match.line_number}[/cyan]: ",
                    end="",
                    highlight=False,
                )
                console.print(match.line, markup=False, highlight=False, soft_wrap=True)

            if matches == 0:
                console.print("[dim]No matches[/dim]")

    except (PDFTextError, OSError) as e:
        _fail(e)


@cli.command(name="title")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
def show_title(input_pdf):
    """
    Print the first line of text on the first page.

    Example:

        pdftextx title paper.pdf
    """
    try:
        with Document.open(input_pdf) as document:
            title = extract_title(document)

        if title is None:
            console.print("[dim]No title found[/dim]")
        else:
            console.print(title, markup=False, highlight=False, soft_wrap=True)

    except (PDFTextError, OSError) as e:
        _fail(e)


if __name__ == '__main__':
    cli()
