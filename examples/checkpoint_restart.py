"""
Example: interrupted optimization loop resumed from a restart point.

Run with any number of ranks, e.g.

    mpiexec -n 4 python examples/checkpoint_restart.py

The first pass performs a few dummy design updates and checkpoints every
iteration. The second pass resumes from the newest slot and continues
with the same iteration counter and objective scale.
"""

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from topopt import TopOptProblem, create_default_config
from topopt.restart import Slot
from topopt.utils import get_default_comm
from topopt.visualization import plot_element_field, plot_partition


def run(comm, workdir, iterations, resume_from=None):
    config = create_default_config("2d_elasticity")
    config.mesh.nxyz = [129, 65]
    config.optimization.rmin = None
    config.restart.workdir = str(workdir)
    if resume_from is not None:
        vec, itr = resume_from
        config.restart.restart_file_vec = str(vec)
        config.restart.restart_file_itr = str(itr)
    config.setup_logging(rank=comm.rank)

    problem = TopOptProblem(config, comm=comm)
    state = problem.setup()
    start = problem.allocate_optimizer()
    if comm.rank == 0:
        print(f"Starting at iteration {start.iteration} ({start.decision.mode.value})")

    if problem.iteration == 0:
        problem.scale = 1.0 / 250.0

    for itr in range(problem.iteration, problem.iteration + iterations):
        # Stand-in for solve, filter and MMA update.
        x = state.x.local_view()[..., 0]
        x += 0.01 * np.sin(np.pi * (itr + 1) * np.linspace(0.0, 1.0, x.shape[1]))
        np.clip(state.x.local, 0.0, 1.0, out=state.x.local)
        state.x_phys.copy_from(state.x)

        problem.optimizer.xo2.copy_from(problem.optimizer.xo1)
        problem.optimizer.xo1.copy_from(state.x)
        problem.iteration = itr + 1
        slot = problem.write_restart_files()
        if comm.rank == 0:
            print(f"  iteration {problem.iteration:3d} -> slot {slot.name}")
    return problem


def main():
    comm = get_default_comm()
    workdir = Path("restart_example")

    first = run(comm, workdir, iterations=5)
    newest = first.restart.slot_paths(first.restart.last_slot or Slot.A)

    second = run(comm, workdir / "resumed", iterations=3, resume_from=newest)

    if second.mesh.dim == 2:
        fig = plot_partition(second.mesh, title="Node and element slabs")
        if comm.rank == 0:
            fig.savefig("partition.png", bbox_inches="tight")
        plt.close(fig)

    fig = plot_element_field(second.state.x_phys, save_name="density.png")
    if fig is not None:
        plt.close(fig)


if __name__ == "__main__":
    main()
