"""
Partition and Field Visualization

Plots for checking the domain decomposition of 2D meshes and for viewing
element fields such as the physical density.

Functions:
    plot_partition: Node and element slabs of every rank
    plot_element_field: Gathered element field as an image
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.patches as patches
from typing import Optional

from ..core.grid import StructuredGrid
from ..core.mesh import Mesh
from ..core.vector import DistributedVector

RANK_COLORS = ['#2563eb', '#dc2626', '#059669', '#d97706', '#7c3aed', '#0891b2']


def _slab_patches(grid: StructuredGrid, ax, edgecolor: str, linestyle: str, label: str):
    hx, hy = grid.spacing
    x0, y0 = grid.bounds[0], grid.bounds[2]
    for rank in range(grid.partition.size):
        (sx, sy), (ex, ey) = grid.partition.slab(rank)
        rect = patches.Rectangle(
            (x0 + (sx - 0.5) * hx, y0 + (sy - 0.5) * hy), ex * hx, ey * hy,
            fill=False, edgecolor=edgecolor, linestyle=linestyle, linewidth=1.5,
            label=label if rank == 0 else None,
        )
        ax.add_patch(rect)
        ax.text(x0 + (sx + ex / 2 - 0.5) * hx, y0 + (sy + ey / 2 - 0.5) * hy,
                str(rank), ha='center', va='center', fontsize=9, color=edgecolor)


def plot_partition(mesh: Mesh, title: str = "Domain Decomposition",
                   save_name: Optional[str] = None):
    """
    Draw the ownership slabs of the node and element grids of a 2D mesh.

    Returns:
        matplotlib.figure.Figure: The created figure
    """
    if mesh.dim != 2:
        raise ValueError("Partition plots are only available for 2D meshes")

    fig, ax = plt.subplots(figsize=(8, 5))
    _slab_patches(mesh.nodes, ax, RANK_COLORS[0], '-', 'node slabs')
    _slab_patches(mesh.elements, ax, RANK_COLORS[1], '--', 'element slabs')

    xc = mesh.nodes.bounds
    ax.set_xlim(xc[0] - mesh.spacing[0], xc[1] + mesh.spacing[0])
    ax.set_ylim(xc[2] - mesh.spacing[1], xc[3] + mesh.spacing[1])
    ax.set_aspect('equal')
    ax.set_title(f"{title}\nprocs={mesh.nodes.proc_grid}")
    ax.legend(loc='upper right')

    if save_name:
        fig.savefig(save_name, bbox_inches='tight')
    return fig


def plot_element_field(field: DistributedVector, title: str = "Physical density",
                       cmap: str = 'gray_r', save_name: Optional[str] = None):
    """
    Collectively gather a 2D element field and show it on the root rank.

    Returns:
        matplotlib.figure.Figure on the root rank, None elsewhere
    """
    grid = field.grid
    if grid.dim != 2 or grid.dof != 1:
        raise ValueError("Only scalar 2D fields can be plotted")

    natural = field.gather_natural()
    if natural is None:
        return None

    values = natural.reshape(grid.global_shape[1], grid.global_shape[0])
    hx, hy = grid.spacing
    extent = (grid.bounds[0] - hx / 2, grid.bounds[1] + hx / 2,
              grid.bounds[2] - hy / 2, grid.bounds[3] + hy / 2)

    fig, ax = plt.subplots(figsize=(8, 5))
    image = ax.imshow(values, origin='lower', extent=extent, cmap=cmap,
                      vmin=0.0, vmax=max(1.0, float(np.max(values))))
    fig.colorbar(image, ax=ax)
    ax.set_title(title)
    ax.set_aspect('equal')

    if save_name:
        fig.savefig(save_name, bbox_inches='tight')
    return fig
