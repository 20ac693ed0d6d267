# main.py
import sys
import xml.etree.ElementTree as ET

import click
import yaml

from src.fixdecoder import settings
from src.fixdecoder.dictionary_cache import default_cache
from src.fixdecoder.dictionary_source import SchemaDepthError
from src.fixdecoder.display import SchemaPrinter
from src.fixdecoder.embedded import supported_fix_versions
from src.fixdecoder.obfuscator import Obfuscator
from src.fixdecoder.prettifier import Colours, LogPrettifier, get_terminal_width
from src.fixdecoder.schema import load_embedded_schema, load_schema


@click.group()
@click.option('--config', 'config_path', default=settings.CONFIG_FILE, show_default=True,
              help='Path to the YAML configuration file.')
@click.option('--log-level', default=None, help='Override the configured log level (DEBUG, INFO, ...).')
@click.pass_context
def cli(ctx, config_path, log_level):
    """
    FIX Decoder.

    Pretty-prints FIX messages found in log files, annotating every tag with
    its field name and enum description, and inspects the bundled (or an
    external) FIX dictionary.
    """
    try:
        config = settings.load_config(config_path)
    except (yaml.YAMLError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration file {config_path}: {e}")

    settings.setup_logging(log_level or config['logging']['level'], config['logging']['file'])
    ctx.obj = config


def schema_options(func):
    func = click.option('--xml', 'xml_path', type=click.Path(dir_okay=False),
                        help='Path to an alternative FIX XML dictionary.')(func)
    func = click.option('--fix', 'fix_version', default=None,
                        help=f'FIX version to use ({supported_fix_versions()}).')(func)
    return func


def display_options(func):
    func = click.option('--column', is_flag=True, help='Display lists and enums in columns.')(func)
    func = click.option('--verbose', is_flag=True, help='Show enum values.')(func)
    return func


def resolve_schema(config, fix_version, xml_path):
    """Build the SchemaTree for --xml or --fix; dictionary problems become click errors."""
    try:
        if xml_path:
            schema = load_schema(xml_path)
            click.echo(f"Dictionary loaded from: {xml_path}\n")
            SchemaPrinter(schema).print_summary()
            return schema
        return load_embedded_schema(fix_version or str(config['defaults']['fix_version']))
    except (OSError, ET.ParseError, SchemaDepthError) as e:
        raise click.ClickException(f"Failed to load FIX dictionary: {e}")


def make_printer(config, schema, verbose=False, column=False):
    return SchemaPrinter(schema, verbose=verbose, column=column,
                         width=_terminal_width(config))


def _terminal_width(config):
    return get_terminal_width(int(config['defaults']['terminal_width']))


@cli.command()
@click.argument('files', nargs=-1, type=click.Path())
@click.option('--validate', is_flag=True, help='Validate FIX messages while decoding.')
@click.option('--colour', type=click.Choice(['yes', 'no']), default=None,
              help='Force coloured output. Default: colour when stdout is a terminal.')
@click.option('--obfuscate', is_flag=True, help='Replace sensitive tag values with stable aliases.')
@click.pass_obj
def decode(config, files, validate, colour, obfuscate):
    """
    Decode FIX messages in log FILES (or stdin).

    Example: python main.py decode --validate logs/session.log
    """
    if colour is None:
        use_colour = sys.stdout.isatty()
    else:
        use_colour = colour == 'yes'

    prettifier = LogPrettifier(
        cache=default_cache,
        validate=validate,
        obfuscator=Obfuscator(config['sensitive_tags'], enabled=obfuscate),
        colours=Colours(enabled=use_colour),
        terminal_width=_terminal_width(config),
    )
    sys.exit(prettifier.prettify_files(list(files)))


@cli.command()
@schema_options
@click.pass_obj
def info(config, fix_version, xml_path):
    """Show a summary of the selected FIX dictionary."""
    schema = resolve_schema(config, fix_version, xml_path)
    make_printer(config, schema).print_info()


@cli.command()
@click.argument('name', required=False)
@schema_options
@display_options
@click.option('--header', 'include_header', is_flag=True, help='Include the Header block.')
@click.option('--trailer', 'include_trailer', is_flag=True, help='Include the Trailer block.')
@click.pass_obj
def message(config, name, fix_version, xml_path, verbose, column, include_header, include_trailer):
    """
    List all messages, or show the structure of message NAME.

    NAME may be a message name (NewOrderSingle) or a MsgType (D).
    """
    schema = resolve_schema(config, fix_version, xml_path)
    printer = make_printer(config, schema, verbose, column)
    if name is None:
        printer.list_messages()
    else:
        printer.print_message(name, include_header, include_trailer)


@cli.command()
@click.argument('number', required=False)
@schema_options
@display_options
@click.pass_obj
def tag(config, number, fix_version, xml_path, verbose, column):
    """List all tags, or show the details of tag NUMBER."""
    schema = resolve_schema(config, fix_version, xml_path)
    printer = make_printer(config, schema, verbose, column)
    if number is None:
        printer.list_tags()
    elif not number.isdigit():
        click.echo(f"Invalid tag: {number}")
    else:
        printer.print_tag(int(number))


@cli.command()
@click.argument('name', required=False)
@schema_options
@display_options
@click.pass_obj
def component(config, name, fix_version, xml_path, verbose, column):
    """List all components, or show the structure of component NAME."""
    schema = resolve_schema(config, fix_version, xml_path)
    printer = make_printer(config, schema, verbose, column)
    if name is None:
        printer.list_components()
    else:
        printer.print_component(name)


if __name__ == '__main__':
    cli()
