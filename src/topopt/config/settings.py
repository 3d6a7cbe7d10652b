"""Configuration classes for topology optimization runs."""

import json
import yaml
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, List, Optional, Union
from pathlib import Path
import logging

from ..core.variants import PhysicsVariant, parse_variant
from ..utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


class FilterType(Enum):
    """Filter applied between design and physical density."""
    SENSITIVITY = 0
    DENSITY = 1
    PDE = 2

    @classmethod
    def parse(cls, value: Union['FilterType', str, int]) -> 'FilterType':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            if value.strip().isdigit():
                return cls(int(value))
            aliases = {"sens": "SENSITIVITY", "dens": "DENSITY"}
            name = value.strip().lower()
            name = aliases.get(name, name).upper()
            if name in cls.__members__:
                return cls[name]
            raise ValueError(f"Invalid filter type: {value}")
        return cls(int(value))


@dataclass
class MeshConfig:
    """Configuration for the structured finite element mesh."""
    variant: str = "2d_elasticity"
    nxyz: Optional[List[int]] = None
    xc: Optional[List[float]] = None
    nlvls: int = 4
    proc_grid: Optional[List[Optional[int]]] = None

    @property
    def physics_variant(self) -> PhysicsVariant:
        return parse_variant(self.variant)

    def validate(self) -> None:
        """Validate mesh configuration."""
        variant = self.physics_variant
        if self.nxyz is not None:
            if len(self.nxyz) != variant.dim:
                raise ValueError(f"nxyz must have {variant.dim} entries for {variant}")
            if any(n < 3 for n in self.nxyz):
                raise ValueError("Mesh must have at least 3 nodes in each direction")
        if self.xc is not None:
            if len(self.xc) != 2 * variant.dim:
                raise ValueError(f"xc must have {2 * variant.dim} entries for {variant}")
            for i in range(variant.dim):
                if self.xc[2 * i + 1] <= self.xc[2 * i]:
                    raise ValueError("Invalid bounding box")
        if self.nlvls < 1:
            raise ValueError("Must have at least 1 multigrid level")
        if self.proc_grid is not None and len(self.proc_grid) != variant.dim:
            raise ValueError(f"proc_grid must have {variant.dim} entries for {variant}")


@dataclass
class MaterialConfig:
    """Material interpolation parameters."""
    E: float = 1.0
    Emin: Optional[float] = None
    Emax: float = 1.0
    nu: float = 0.3

    def validate(self) -> None:
        if self.Emin is not None and not 0 <= self.Emin < self.Emax:
            raise ValueError("Emin must satisfy 0 <= Emin < Emax")
        if not -1.0 < self.nu < 0.5:
            raise ValueError(f"Invalid Poisson ratio: {self.nu}")


@dataclass
class OptimizationConfig:
    """Configuration for the optimization problem."""
    num_constraints: int = 1
    volfrac: Optional[float] = None
    penal: float = 3.0
    rmin: Optional[float] = None
    max_itr: int = 400
    filter: Union[str, int] = "density"
    Xmin: float = 0.0
    Xmax: float = 1.0
    movlim: float = 0.2

    @property
    def filter_type(self) -> FilterType:
        return FilterType.parse(self.filter)

    def validate(self) -> None:
        """Validate optimization configuration."""
        if self.num_constraints < 1:
            raise ValueError("Must have at least one constraint")
        if self.volfrac is not None and not 0 < self.volfrac <= 1:
            raise ValueError(f"Volume fraction must be in (0, 1], got {self.volfrac}")
        if self.penal < 1:
            logger.warning(f"Penalization {self.penal} < 1 does not penalize intermediate densities")
        if self.rmin is not None and self.rmin <= 0:
            raise ValueError("Filter radius must be positive")
        if self.max_itr < 0:
            raise ValueError("Maximum iterations must be non-negative")
        FilterType.parse(self.filter)
        if self.Xmin >= self.Xmax:
            raise ValueError("Xmin must be smaller than Xmax")
        if not 0 < self.movlim <= 1:
            raise ValueError(f"Invalid move limit: {self.movlim}")


@dataclass
class ProjectionConfig:
    """Heaviside projection filter parameters."""
    enabled: bool = False
    beta: float = 0.1
    beta_final: float = 48.0
    eta: float = 0.0

    def validate(self) -> None:
        if self.beta <= 0 or self.beta_final < self.beta:
            raise ValueError("Projection requires 0 < beta <= beta_final")
        if not 0 <= self.eta <= 1:
            raise ValueError(f"Projection threshold eta must be in [0, 1], got {self.eta}")


@dataclass
class RestartConfig:
    """Checkpoint/restart configuration."""
    enabled: bool = True
    workdir: str = "./"
    restart_file_vec: str = ""
    restart_file_itr: str = ""
    only_load_design: bool = False

    def validate(self) -> None:
        if self.only_load_design and not self.enabled:
            logger.warning("only_load_design has no effect while restart is disabled")


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_output: Optional[str] = None
    console_output: bool = True
    all_ranks: bool = False
    colored: bool = False

    def validate(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level not in valid_levels:
            raise ValueError(f"Invalid logging level: {self.level}")


# Command line option names accepted by apply_options, mapped to (section, field).
OPTION_MAP = {
    "nx": ("mesh", "nxyz", 0),
    "ny": ("mesh", "nxyz", 1),
    "nz": ("mesh", "nxyz", 2),
    "xcmin": ("mesh", "xc", 0),
    "xcmax": ("mesh", "xc", 1),
    "ycmin": ("mesh", "xc", 2),
    "ycmax": ("mesh", "xc", 3),
    "zcmin": ("mesh", "xc", 4),
    "zcmax": ("mesh", "xc", 5),
    "nlvls": ("mesh", "nlvls", None),
    "E": ("material", "E", None),
    "Emin": ("material", "Emin", None),
    "Emax": ("material", "Emax", None),
    "nu": ("material", "nu", None),
    "volfrac": ("optimization", "volfrac", None),
    "penal": ("optimization", "penal", None),
    "rmin": ("optimization", "rmin", None),
    "maxItr": ("optimization", "max_itr", None),
    "filter": ("optimization", "filter", None),
    "Xmin": ("optimization", "Xmin", None),
    "Xmax": ("optimization", "Xmax", None),
    "movlim": ("optimization", "movlim", None),
    "projectionFilter": ("projection", "enabled", None),
    "beta": ("projection", "beta", None),
    "betaFinal": ("projection", "beta_final", None),
    "eta": ("projection", "eta", None),
    "restart": ("restart", "enabled", None),
    "workdir": ("restart", "workdir", None),
    "restartFileVec": ("restart", "restart_file_vec", None),
    "restartFileItr": ("restart", "restart_file_itr", None),
    "onlyLoadDesign": ("restart", "only_load_design", None),
}


@dataclass
class TopOptConfig:
    """Complete configuration for a topology optimization run."""
    mesh: MeshConfig = None
    material: MaterialConfig = None
    optimization: OptimizationConfig = None
    projection: ProjectionConfig = None
    restart: RestartConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        """Initialize default configurations if not provided."""
        if self.mesh is None:
            self.mesh = MeshConfig()
        if self.material is None:
            self.material = MaterialConfig()
        if self.optimization is None:
            self.optimization = OptimizationConfig()
        if self.projection is None:
            self.projection = ProjectionConfig()
        if self.restart is None:
            self.restart = RestartConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    @property
    def variant(self) -> PhysicsVariant:
        return self.mesh.physics_variant

    def resolve(self) -> 'TopOptConfig':
        """
        Fill every unset value from the physics variant's defaults.

        The filter radius defaults to a multiple of the largest element edge
        of the resolved mesh.
        """
        variant = self.variant
        if self.mesh.nxyz is None:
            self.mesh.nxyz = list(variant.nxyz)
        if self.mesh.xc is None:
            self.mesh.xc = list(variant.xc)
        if self.material.Emin is None:
            self.material.Emin = variant.Emin
        if self.optimization.volfrac is None:
            self.optimization.volfrac = variant.volfrac
        if self.optimization.rmin is None:
            h = max(
                (self.mesh.xc[2 * i + 1] - self.mesh.xc[2 * i]) / (self.mesh.nxyz[i] - 1)
                for i in range(variant.dim)
            )
            self.optimization.rmin = variant.rmin_factor * h
        return self

    def validate(self) -> None:
        """Validate all configuration sections."""
        self.mesh.validate()
        self.material.validate()
        self.optimization.validate()
        self.projection.validate()
        self.restart.validate()
        self.logging.validate()

        if self.mesh.nxyz is not None:
            divisor = 2 ** (self.mesh.nlvls - 1)
            bad = [n for n in self.mesh.nxyz if (n - 1) % divisor != 0]
            if bad:
                logger.warning(f"Node counts {bad} cannot be halved {self.mesh.nlvls - 1} times; "
                               f"mesh construction will abort")

    def apply_options(self, options: Dict[str, Any]) -> 'TopOptConfig':
        """
        Override values using the solver's command line option names.

        Args:
            options: Mapping such as ``{"nx": 129, "restartFileVec": "a.dat"}``;
                None values are ignored
        """
        variant = self.variant
        for name, value in options.items():
            if value is None:
                continue
            if name not in OPTION_MAP:
                raise KeyError(f"Unknown option: -{name}")
            section_name, attr, index = OPTION_MAP[name]
            section = getattr(self, section_name)
            if index is None:
                setattr(section, attr, value)
                continue
            current = getattr(section, attr)
            if current is None:
                current = list(variant.nxyz if attr == "nxyz" else variant.xc)
            current = list(current)
            if index >= len(current):
                raise KeyError(f"Option -{name} does not apply to {variant}")
            current[index] = value
            setattr(section, attr, current)
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TopOptConfig':
        """Create configuration from dictionary."""
        config = cls()

        if 'mesh' in config_dict:
            config.mesh = MeshConfig(**config_dict['mesh'])

        if 'material' in config_dict:
            config.material = MaterialConfig(**config_dict['material'])

        if 'optimization' in config_dict:
            config.optimization = OptimizationConfig(**config_dict['optimization'])

        if 'projection' in config_dict:
            config.projection = ProjectionConfig(**config_dict['projection'])

        if 'restart' in config_dict:
            config.restart = RestartConfig(**config_dict['restart'])

        if 'logging' in config_dict:
            config.logging = LoggingConfig(**config_dict['logging'])

        return config

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> 'TopOptConfig':
        """Load configuration from JSON file."""
        json_path = Path(json_path)

        if not json_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {json_path}")

        with open(json_path, 'r') as f:
            config_dict = json.load(f)

        config = cls.from_dict(config_dict)
        config.validate()

        logger.info(f"Loaded configuration from {json_path}")
        return config

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'TopOptConfig':
        """Load configuration from YAML file."""
        yaml_path = Path(yaml_path)

        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        config = cls.from_dict(config_dict)
        config.validate()

        logger.info(f"Loaded configuration from {yaml_path}")
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'TopOptConfig':
        """Load from YAML or JSON depending on the file suffix."""
        if Path(path).suffix.lower() == ".json":
            return cls.from_json(path)
        return cls.from_yaml(path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'mesh': asdict(self.mesh),
            'material': asdict(self.material),
            'optimization': asdict(self.optimization),
            'projection': asdict(self.projection),
            'restart': asdict(self.restart),
            'logging': asdict(self.logging)
        }

    def to_json(self, json_path: Union[str, Path], indent: int = 2) -> None:
        """Save configuration to JSON file."""
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)

        logger.info(f"Saved configuration to {json_path}")

    def to_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)

        logger.info(f"Saved configuration to {yaml_path}")

    def setup_logging(self, rank: int = 0) -> None:
        """Setup logging based on configuration."""
        setup_logging(
            level=self.logging.level,
            format_string=self.logging.format,
            log_file=self.logging.file_output,
            console_output=self.logging.console_output,
            colored_console=self.logging.colored,
            rank=None if self.logging.all_ranks else rank,
        )

    def __str__(self) -> str:
        """String representation of configuration."""
        nxyz = "x".join(str(n) for n in (self.mesh.nxyz or self.variant.nxyz))
        return (f"TopOptConfig(variant={self.mesh.variant}, mesh={nxyz}, "
                f"levels={self.mesh.nlvls}, restart={self.restart.enabled})")


def create_default_config(variant: str = "2d_elasticity") -> TopOptConfig:
    """Create a resolved default configuration for a physics variant."""
    return TopOptConfig(mesh=MeshConfig(variant=variant)).resolve()
