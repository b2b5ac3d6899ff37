"""
twinmap CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import logging

import click

from .commands import init
from .commands import mapping, models, telemetry, twins


@click.group()
@click.version_option(package_name="twinmap")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """twinmap: Map OPC-UA telemetry onto digital twins.

    Normalizes DTDL models, twin listings and OPC-UA tag exports into
    collapsible trees, and builds tag -> twin property mappings.

    \b
    Quick Start:
      twinmap models models.json
      twinmap twins twins.json --draft-model dtmi:example:Pump;1 --draft-twin pump-3
      twinmap map --models models.json --twins twins.json --telemetry tags.json \\
        --tag "ns=2;s=Temp" --twin pump-1 --property temperature
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# Register commands
main.add_command(models.models)
main.add_command(twins.twins)
main.add_command(telemetry.telemetry)
main.add_command(mapping.map_command, name="map")
main.add_command(init)

if __name__ == "__main__":
    main()
