"""Unit tests for partition and field plots."""

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pytest

from tests import parallel, serial_comm, world_comm
from topopt.core.mesh import MeshBuilder
from topopt.visualization import plot_element_field, plot_partition


def _mesh(comm, nxyz=(17, 9)):
    xc = (0.0, 2.0, 0.0, 1.0, 0.0, 1.0)[:2 * len(nxyz)]
    return MeshBuilder(comm, nxyz, xc, levels=2, dofs_per_node=len(nxyz)).build()


class TestPartitionPlot:

    def test_one_rectangle_per_slab(self, tmp_path):
        mesh = _mesh(serial_comm())
        fig = plot_partition(mesh, save_name=str(tmp_path / "partition.png"))
        assert len(fig.axes[0].patches) == 2
        assert (tmp_path / "partition.png").exists()
        plt.close(fig)

    def test_one_label_per_rank_and_grid(self):
        fig = plot_partition(_mesh(serial_comm()))
        assert [t.get_text() for t in fig.axes[0].texts] == ["0", "0"]
        plt.close(fig)

    @parallel
    def test_rank_labels_on_all_ranks(self):
        comm = world_comm()
        fig = plot_partition(_mesh(comm))
        labels = sorted(t.get_text() for t in fig.axes[0].texts)
        assert labels == sorted([str(r) for r in range(comm.size)] * 2)
        plt.close(fig)

    def test_3d_rejected(self):
        with pytest.raises(ValueError, match="2D"):
            plot_partition(_mesh(serial_comm(), (9, 9, 5)))


class TestElementFieldPlot:

    def test_image_matches_field(self):
        mesh = _mesh(serial_comm())
        field = mesh.elements.create_global_vector()
        field.local[:] = np.linspace(0.0, 1.0, field.get_local_size())

        fig = plot_element_field(field, title="xPhys")
        image = fig.axes[0].images[0].get_array()
        assert image.shape == (8, 16)
        np.testing.assert_allclose(np.asarray(image).reshape(-1), field.local)
        plt.close(fig)

    @parallel
    def test_only_root_gets_figure(self):
        comm = world_comm()
        mesh = _mesh(comm)
        fig = plot_element_field(mesh.elements.create_global_vector(0.5))
        assert (fig is not None) == (comm.rank == 0)
        if fig is not None:
            plt.close(fig)

    def test_vector_field_rejected(self):
        mesh = _mesh(serial_comm())
        with pytest.raises(ValueError, match="scalar 2D"):
            plot_element_field(mesh.nodes.create_global_vector())
