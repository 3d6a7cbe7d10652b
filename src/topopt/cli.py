"""Command line entry point: set up a run and report its restart state."""

import argparse
import sys
import logging
from typing import List, Optional

from .config.settings import DEFAULT_CONFIG_PATH, OPTION_MAP, MeshConfig, TopOptConfig
from .core.variants import parse_variant
from .exceptions import TopOptError
from .problem import TopOptProblem
from .utils.mpi import get_default_comm

logger = logging.getLogger(__name__)

_INT_OPTIONS = {"nx", "ny", "nz", "nlvls", "maxItr"}
_BOOL_OPTIONS = {"projectionFilter", "restart", "onlyLoadDesign"}
_STR_OPTIONS = {"workdir", "restartFileVec", "restartFileItr", "filter"}


def str2bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Expected a boolean, got {value!r}")


def variant_name(value: str) -> str:
    try:
        return parse_variant(value).name
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topopt-setup",
        allow_abbrev=False,
        description="Build the mesh, allocate the design state and resolve restart files",
    )
    parser.add_argument('--config', help='YAML or JSON configuration file (default: bundled default.yaml)')
    parser.add_argument('--variant', type=variant_name,
                        help='Physics variant, e.g. 2d_elasticity or 3d_heat')
    parser.add_argument('--constraints', type=int, help='Number of constraints m')
    parser.add_argument('--write-checkpoint', action='store_true',
                        help='Write a restart point for the starting iteration')
    parser.add_argument('--log-level', default=None,
                        help='Logging level (DEBUG, INFO, WARNING, ...)')
    parser.add_argument('--color', action='store_true',
                        help='Colored console logging')

    for name in OPTION_MAP:
        if name in _INT_OPTIONS:
            parser.add_argument(f'-{name}', dest=name, type=int)
        elif name in _BOOL_OPTIONS:
            parser.add_argument(f'-{name}', dest=name, type=str2bool, nargs='?', const=True)
        elif name in _STR_OPTIONS:
            parser.add_argument(f'-{name}', dest=name)
        else:
            parser.add_argument(f'-{name}', dest=name, type=float)
    return parser


def load_config(args: argparse.Namespace) -> TopOptConfig:
    """Configuration from file, then variant, then individual options."""
    config = TopOptConfig.from_file(args.config or DEFAULT_CONFIG_PATH)
    if args.variant:
        config.mesh = MeshConfig(variant=args.variant, nlvls=config.mesh.nlvls,
                                 proc_grid=config.mesh.proc_grid)
    if args.constraints is not None:
        config.optimization.num_constraints = args.constraints
    if args.log_level:
        config.logging.level = args.log_level.upper()
    if args.color:
        config.logging.colored = True
    config.apply_options({name: getattr(args, name) for name in OPTION_MAP})
    return config


def main(argv: Optional[List[str]] = None, comm=None) -> int:
    args = build_parser().parse_args(argv)
    comm = comm if comm is not None else get_default_comm()

    try:
        config = load_config(args)
        config.setup_logging(rank=comm.rank)
        problem = TopOptProblem(config, comm=comm)

        problem.setup()
        start = problem.allocate_optimizer()
        logger.info(f"Starting at iteration {start.iteration} ({start.decision.mode.value})")

        if args.write_checkpoint:
            slot = problem.write_restart_files()
            logger.info(f"Initial restart point written to slot {slot.name}")
    except (TopOptError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
