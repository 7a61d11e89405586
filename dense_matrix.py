"""Dense row-major matrix used as input and output of the multipliers."""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


class Matrix:
    """Fixed-size two-dimensional float64 matrix.

    The shape is fixed at construction; element values may be changed in
    place through indexed assignment.

    Attributes
    ----------
    rows : int
        Number of rows
    cols : int
        Number of columns
    data : np.ndarray
        Contiguous row-major storage of shape (rows, cols)
    """

    def __init__(self, rows: int, cols: int):
        """Allocate a zero-filled matrix.

        Parameters
        ----------
        rows : int
            Number of rows
        cols : int
            Number of columns
        """
        if rows < 0 or cols < 0:
            raise ValueError(f"Matrix dimensions must be non-negative: ({rows}, {cols})")
        self._rows = rows
        self._cols = cols
        self.data = np.zeros((rows, cols), dtype=np.float64)

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self) -> Tuple[int, int]:
        return self._rows, self._cols

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self._rows and 0 <= col < self._cols):
            raise IndexError(
                f"Index ({row}, {col}) out of range for matrix of shape {self.shape}"
            )

    def __getitem__(self, index: Tuple[int, int]) -> float:
        row, col = index
        self._check_index(row, col)
        return self.data[row, col]

    def __setitem__(self, index: Tuple[int, int], value: float) -> None:
        row, col = index
        self._check_index(row, col)
        self.data[row, col] = value

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    def __repr__(self) -> str:
        return f"Matrix(rows={self._rows}, cols={self._cols})"

    def __str__(self) -> str:
        return self.render()

    def random_fill(
        self, min_value: int = 0, max_value: int = 100, seed: Optional[int] = None
    ) -> "Matrix":
        """Fill the matrix with random integers from ``[min_value, max_value)``.

        Parameters
        ----------
        min_value : int
            Inclusive lower bound
        max_value : int
            Exclusive upper bound
        seed : Optional[int]
            Seed for a reproducible fill; ``None`` draws fresh entropy

        Returns
        -------
        Matrix
            This matrix, to allow chaining
        """
        if min_value >= max_value:
            raise ValueError(f"Empty fill range: [{min_value}, {max_value})")
        rng = np.random.default_rng(seed)
        self.data[:] = rng.integers(min_value, max_value, size=self.shape)
        return self

    def render(self) -> str:
        """Return the tab-separated text form, one line per row."""
        return "\n".join(
            "".join(f"{value:.0f}\t" for value in row) for row in self.data
        )

    def print(self) -> None:
        print(self.render())

    def to_list(self) -> List[List[float]]:
        return self.data.tolist()

    def copy(self) -> "Matrix":
        clone = Matrix(self._rows, self._cols)
        clone.data[:] = self.data
        return clone

    @classmethod
    def from_rows(cls, rows: Sequence[Iterable[float]]) -> "Matrix":
        """Build a matrix from a sequence of equally long rows."""
        values = np.array([list(row) for row in rows], dtype=np.float64)
        if values.size == 0:
            return cls(len(rows), 0)
        if values.ndim != 2:
            raise ValueError("All rows must have the same length")
        matrix = cls(*values.shape)
        matrix.data[:] = values
        return matrix

    @classmethod
    def identity(cls, size: int) -> "Matrix":
        matrix = cls(size, size)
        np.fill_diagonal(matrix.data, 1.0)
        return matrix
