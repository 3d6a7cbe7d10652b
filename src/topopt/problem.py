"""Setup of a topology optimization run: mesh, state, optimizer and restart."""

import logging
from typing import Optional

from .config.settings import FilterType, TopOptConfig
from .core.mesh import Mesh, MeshBuilder
from .exceptions import DependencyOrderError
from .optimizer.factory import OptimizerStart, OptimizerStateFactory
from .optimizer.handle import MMAState
from .restart.checkpoint import RestartCheckpointManager, Slot
from .state.design import DesignState, DesignStateStore
from .utils.mpi import get_default_comm

logger = logging.getLogger(__name__)


class TopOptProblem:
    """
    Owns everything the optimization loop needs besides physics and filters.

    Typical use::

        problem = TopOptProblem(config)
        problem.setup()
        problem.allocate_optimizer()
        for itr in range(problem.iteration, config.optimization.max_itr):
            ...  # solve, filter, update
            problem.iteration = itr + 1
            problem.write_restart_files()
    """

    def __init__(self, config: TopOptConfig, comm=None, optimizer_cls=MMAState):
        self.config = config.resolve()
        self.config.validate()
        self.comm = comm if comm is not None else get_default_comm()
        self.variant = self.config.variant

        self.mesh: Optional[Mesh] = None
        self.state: Optional[DesignState] = None
        self.optimizer = None
        self.iteration = 0
        self.scale = 1.0
        self.Xmin = self.config.optimization.Xmin

        self.restart = RestartCheckpointManager.from_config(self.comm, self.config.restart)
        self.factory = OptimizerStateFactory(self.restart, optimizer_cls)

    @property
    def m(self) -> int:
        return self.config.optimization.num_constraints

    def setup(self) -> DesignState:
        """Collectively build the mesh and allocate the design state."""
        mesh_cfg = self.config.mesh
        builder = MeshBuilder(
            self.comm,
            mesh_cfg.nxyz,
            mesh_cfg.xc,
            levels=mesh_cfg.nlvls,
            dofs_per_node=self.variant.dofs_per_node,
            proc_grid=mesh_cfg.proc_grid,
        )
        self.mesh = builder.build()

        opt = self.config.optimization
        store = DesignStateStore(
            self.mesh,
            num_constraints=opt.num_constraints,
            volfrac=opt.volfrac,
            Xmin=opt.Xmin,
            Xmax=opt.Xmax,
            sensitivity_filter=opt.filter_type is FilterType.SENSITIVITY,
        )
        self.state = store.allocate()
        self.Xmin = store.Xmin
        self._log_settings()
        return self.state

    def allocate_optimizer(self) -> OptimizerStart:
        """Construct the optimizer, resuming from a checkpoint if configured."""
        if self.state is None:
            raise DependencyOrderError("allocate_optimizer() called before setup()")
        start = self.factory.create(self.state)
        self.optimizer = start.optimizer
        self.iteration = start.iteration
        self.scale = start.scale
        return start

    def write_restart_files(self) -> Slot:
        """Checkpoint the current iteration; see RestartCheckpointManager.write."""
        if self.optimizer is None:
            raise DependencyOrderError("write_restart_files() called before allocate_optimizer()")
        return self.restart.write(self.iteration, self.scale, self.state, self.optimizer)

    def _log_settings(self) -> None:
        cfg = self.config
        opt, mat, proj = cfg.optimization, cfg.material, cfg.projection
        logger.info("################### Optimization settings ####################")
        logger.info(f"# Physics variant: {self.variant}")
        logger.info(f"# Problem size: n= {self.state.n}, m= {self.m}")
        logger.info(f"# -filter: {opt.filter_type.value}  (0=sens., 1=dens, 2=PDE)")
        logger.info(f"# -rmin: {opt.rmin:f}")
        logger.info(f"# -projectionFilter: {int(proj.enabled)}  (0/1)")
        logger.info(f"# -beta: {proj.beta:f}")
        logger.info(f"# -betaFinal: {proj.beta_final:f}")
        logger.info(f"# -eta: {proj.eta:f}")
        logger.info(f"# -volfrac: {opt.volfrac:f}")
        logger.info(f"# -penal: {opt.penal:f}")
        logger.info(f"# -Emin/-Emax: {mat.Emin:e} - {mat.Emax:e}")
        logger.info(f"# -nu: {mat.nu:f}")
        logger.info(f"# -maxItr: {opt.max_itr}")
        logger.info(f"# -movlim: {opt.movlim:f}")
        logger.info("##############################################################")
