"""
Command Line Interface for dockast.
"""
import json
import logging

import click
import yaml

from ..MODELS.parse_errors import DockerfileParseError
from ..PARSERS.dockerfile_parser import DockerfileParser


@click.group()
@click.option('--max-size', type=int, default=None, help='Reject Dockerfiles larger than this many characters')
@click.option('--verbose', '-v', is_flag=True, help='Log each parsed step')
@click.pass_context
def cli(ctx, max_size, verbose):
    """
    dockast - Dockerfile to AST.

    Parses Dockerfiles into structured build instructions.
    """
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')
    ctx.obj['parser'] = DockerfileParser(max_size=max_size)


def _load(ctx, dockerfile):
    """
    Parses the Dockerfile, turning syntax errors into a usage-style failure.
    """
    try:
        return ctx.obj['parser'].parse(dockerfile)
    except DockerfileParseError as e:
        click.echo(f"Error: {dockerfile}: {e}", err=True)
        if e.expected:
            click.echo(f"  expected {e.expected}", err=True)
        ctx.exit(1)


@cli.command()
@click.argument('dockerfile', type=click.Path(exists=True, dir_okay=False))
@click.option('--format', '-f', 'output_format', type=click.Choice(['json', 'yaml']), default='json')
@click.pass_context
def parse(ctx, dockerfile, output_format):
    """Print the parsed steps of a Dockerfile."""
    document = _load(ctx, dockerfile)
    data = document.model_dump(mode='json')['steps']
    if output_format == 'yaml':
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)
    else:
        click.echo(json.dumps(data, indent=2))


@cli.command()
@click.argument('dockerfile', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def check(ctx, dockerfile):
    """Check that a Dockerfile parses."""
    document = _load(ctx, dockerfile)
    click.echo(f"OK ({len(document)} steps)")


@cli.command()
@click.argument('dockerfile', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def stages(ctx, dockerfile):
    """List build stages"""
    document = _load(ctx, dockerfile)
    click.echo(f"{'STAGE':15} {'IMAGE':30}")
    click.echo("-" * 46)
    for index, stage in enumerate(document.stages):
        click.echo(f"{stage.alias or index!s:15} {stage.image:30}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
