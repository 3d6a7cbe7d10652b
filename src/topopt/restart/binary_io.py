"""
Binary vector containers.

A container is a plain concatenation of vectors written through a PETSc
binary viewer, each in natural grid ordering. There is no schema; readers
must request vectors in the order they were written. PETSc may place a
``<name>.info`` file next to the container.
"""

from pathlib import Path
from typing import Optional, Union
import logging

from petsc4py import PETSc

from ..core.vector import DistributedVector
from ..exceptions import CheckpointFormatError
from ..utils.mpi import is_root, root_only

logger = logging.getLogger(__name__)


class BinaryVectorWriter:
    """
    Collective writer of an ordered vector container.

    All ranks construct the writer and call ``write`` for the same vectors in
    the same order.
    """

    def __init__(self, comm, path: Union[str, Path]):
        self.comm = comm
        self.path = Path(path)
        self._viewer: Optional[PETSc.Viewer] = None
        self.count = 0

    def __enter__(self) -> 'BinaryVectorWriter':
        def prepare():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            open(self.path, 'wb').close()

        # The viewer reports open failures on the root only.
        root_only(self.comm, prepare)
        self._viewer = PETSc.Viewer().createBinary(
            str(self.path), mode=PETSc.Viewer.FileMode.WRITE, comm=self.comm
        )
        return self

    def write(self, vec: DistributedVector) -> None:
        """Collectively append ``vec``."""
        vec.vec.view(self._viewer)
        self.count += 1

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._viewer is not None:
            self._viewer.destroy()
            self._viewer = None
        if is_root(self.comm):
            logger.debug(f"Wrote {self.count} vectors to {self.path}")


class BinaryVectorReader:
    """Collective reader mirroring BinaryVectorWriter."""

    def __init__(self, comm, path: Union[str, Path]):
        self.comm = comm
        self.path = Path(path)
        self._viewer: Optional[PETSc.Viewer] = None
        self.count = 0

    def __enter__(self) -> 'BinaryVectorReader':
        root_only(self.comm, lambda: open(self.path, 'rb').close())
        self._viewer = PETSc.Viewer().createBinary(
            str(self.path), mode=PETSc.Viewer.FileMode.READ, comm=self.comm
        )
        return self

    def load(self, vec: DistributedVector) -> None:
        """
        Collectively read the next vector into ``vec``.

        Raises:
            CheckpointFormatError: on truncation, a non-vector record or a
                length that does not match ``vec``
        """
        try:
            vec.vec.load(self._viewer)
        except PETSc.Error as e:
            raise CheckpointFormatError(
                f"Cannot read vector {self.count + 1} of length {vec.get_size()}: {e}",
                str(self.path),
            ) from e
        self.count += 1

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._viewer is not None:
            self._viewer.destroy()
            self._viewer = None
        if is_root(self.comm):
            logger.debug(f"Read {self.count} vectors from {self.path}")
