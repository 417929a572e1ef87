from pathlib import Path
from typing import Optional

import click

from .builds import BuildCatalog, default_catalog, load_catalog
from .contigs import extract_mapped_contigs
from .dictionary import resolve_dictionary
from .errors import HtsProbeError
from .logging_utils import setup_logging
from .samples import extract_samples


class _CoreErrors(click.ClickException):
    exit_code = 2


def _run(func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except HtsProbeError as exc:
        raise _CoreErrors(str(exc)) from exc
    except OSError as exc:
        raise _CoreErrors(f"{exc.__class__.__name__}: {exc}") from exc


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
def cli(log_level: str, log_file: Optional[Path]):
    """Inspect metadata of VCF, BCF, SAM, BAM, CRAM, FASTA and interval-list files."""
    setup_logging(log_level, log_file=log_file)


####### Sequence dictionary ###########
@cli.command()
@click.argument("source")
def dictionary(source):
    """Print the sequence dictionary of SOURCE (path or URL)."""
    for record in _run(resolve_dictionary, source):
        fields = [record.name, str(record.length)]
        if record.md5:
            fields.append(record.md5)
        click.echo("\t".join(fields))
##########################################

####### Samples ###########
@cli.command()
@click.argument("source")
@click.option(
    "--rg-attribute",
    default="SM",
    show_default=True,
    help="Read-group attribute holding the sample name (SAM/BAM/CRAM only).",
)
def samples(source, rg_attribute):
    """Print the samples declared in SOURCE."""
    found = _run(extract_samples, source, rg_attribute)
    for sample in found if isinstance(found, list) else sorted(found):
        click.echo(sample)
##########################################

####### Mapped contigs ###########
@cli.command()
@click.argument("source")
def contigs(source):
    """Print contigs of SOURCE that have records, according to its index."""
    for name in _run(extract_mapped_contigs, source):
        click.echo(name)
##########################################

####### Build ###########
@cli.command()
@click.argument("source")
@click.option(
    "--resolve-chromosome/--exact",
    default=True,
    show_default=True,
    help="Normalize contig names (chr1 == 1, chrM == MT) when matching.",
)
@click.option(
    "--builds",
    "builds_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML build catalog overriding the packaged one.",
)
def build(source, resolve_chromosome: bool, builds_path: Optional[Path]):
    """Identify the reference genome build of SOURCE."""
    catalog: BuildCatalog = (
        _run(load_catalog, builds_path) if builds_path is not None else default_catalog()
    )
    seq_dict = _run(resolve_dictionary, source)
    found = catalog.match(seq_dict, resolve_chromosome)
    if found is None:
        click.echo(f"No known build matches {source}", err=True)
        raise SystemExit(1)
    click.echo("\t".join([found.id, found.organism, found.version]))
##########################################
