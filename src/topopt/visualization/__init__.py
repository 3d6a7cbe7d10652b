"""Plots of mesh partitions and element fields."""

from .partition_plots import plot_partition, plot_element_field

__all__ = ["plot_partition", "plot_element_field"]
