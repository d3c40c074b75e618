"""
powerctl Command Line Interface
Validates and applies each requested knob, or prints the current status as JSON.
"""

import logging
from typing import Callable, Optional

import click

from cpu_manager import CPUManager
from devices.rog_ally import ROGAllyController
from power_status import collect_status
from powerctl_enums import Knob
from powerctl_settings import load_settings
from powerctl_utils import (
    ConfigurationError,
    PowerCtlError,
    RangeValidationError,
    in_range,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def validate_and_apply(
    value: Optional[int],
    validate: Callable[[int], None],
    flag_name: str,
    apply: Callable[[int], Optional[PowerCtlError]],
) -> bool:
    """Validate one knob and apply it; report problems without raising.

    Returns True when the knob was not requested or was applied cleanly.
    """
    if value is None:
        return True

    try:
        validate(value)
    except RangeValidationError as e:
        click.echo(f"Input error: {flag_name} {e}")
        return False

    err = apply(value)
    if err is not None:
        click.echo(f"Error setting {flag_name} to value {value}: {err}")
        return False
    return True


@click.command()
@click.option("--boost", type=int, default=None, help="Control CPU boost (0 | 1)")
@click.option("--charge", type=int, default=None, help="Control max battery charge limit (50 - 100 by default, see charge_range)")
@click.option("--cores", type=int, default=None, help="Control online CPU cores (2 - physical_cores, 8 by default)")
@click.option("--smt", type=int, default=None, help="Control Simultaneous Multi-Threading (0 | 1)")
@click.option("--tdp", type=int, default=None, help="Control TDP limit (8 - 25 by default, see tdp_range)")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Settings file (defaults to $POWERCTL_CONFIG or /etc/powerctl/powerctl.json)")
@click.option("--verbose", "-v", is_flag=True, help="Log every control file write")
@click.pass_context
def main(
    ctx: click.Context,
    boost: Optional[int],
    charge: Optional[int],
    cores: Optional[int],
    smt: Optional[int],
    tdp: Optional[int],
    json_output: bool,
    config: Optional[str],
    verbose: bool,
) -> None:
    """
    powerctl

    Set CPU cores, SMT, TDP, battery charge limit and CPU boost on ASUS
    handhelds through their sysfs control files.
    """
    requested = [boost, charge, cores, smt, tdp]
    if all(v is None for v in requested) and not (json_output or config or verbose):
        click.echo("Usage:")
        click.echo(ctx.get_help())
        ctx.exit(1)

    setup_logging(verbose)

    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    cpu = CPUManager(settings=settings)
    device = ROGAllyController(settings=settings)

    if json_output:
        click.echo(collect_status(cpu, device).to_json())
        ctx.exit(0)

    knobs = [
        (Knob.CORES, cores, in_range(*settings.cores_range), cpu.set_core_count),
        (Knob.TDP, tdp, in_range(*settings.tdp_range), device.set_tdp),
        (Knob.CHARGE, charge, in_range(*settings.charge_range), device.set_charge_limit),
        (Knob.SMT, smt, in_range(0, 1), lambda n: cpu.set_smt(bool(n))),
        (Knob.BOOST, boost, in_range(0, 1), lambda n: device.set_boost(bool(n))),
    ]

    for knob, value, validate, apply in knobs:
        validate_and_apply(value, validate, f"--{knob.value}", apply)


if __name__ == "__main__":
    main()
