"""
Per-leaf prediction value table.

A ``PredictionValues`` table holds one row per leaf (or, at query time, one
row per tree the test point fell into). Each row is either a vector of
``num_types`` values or flagged empty. The table is built once and never
modified afterwards: its arrays are marked read-only on construction, so a
finished table can be shared between threads without locking.
"""

from typing import Iterable, Optional, Sequence, Union
import numpy as np
import pandas as pd


class PredictionValues:
    """
    Read-only table of per-leaf prediction values.

    Parameters
    ----------
    values : np.ndarray
        Array of shape (num_nodes, num_types). Entries of empty rows are
        ignored and stored as zero.
    empty : np.ndarray
        Boolean array of shape (num_nodes,), True where the row holds no
        valid value.

    Notes
    -----
    Rows flagged empty cover both leaves without samples and leaves whose
    total sample weight is too small to normalize by. The two cases are not
    distinguished.

    Examples
    --------
    >>> table = PredictionValues.from_rows([[0.9, 0.1], None], num_types=2)
    >>> table.num_nodes, table.is_empty(1), table.get(0, 0)
    (2, True, 0.9)
    """

    def __init__(self, values: np.ndarray, empty: np.ndarray):
        values = np.array(values, dtype=np.float64)
        empty = np.array(empty, dtype=bool)
        if values.ndim != 2:
            raise ValueError(f"values must be two-dimensional, got shape {values.shape}")
        if empty.shape != (values.shape[0],):
            raise ValueError(
                f"empty must have one entry per row. "
                f"Got {empty.shape[0] if empty.ndim else 0} entries for {values.shape[0]} rows"
            )
        values[empty] = 0.0

        values.setflags(write=False)
        empty.setflags(write=False)
        self._values = values
        self._empty = empty

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Optional[Sequence[float]]],
        num_types: int,
    ) -> "PredictionValues":
        """
        Build a table from a list of rows.

        Parameters
        ----------
        rows : iterable of sequence or None
            One entry per node. ``None`` or an empty sequence marks the
            node as empty.
        num_types : int
            Length of every non-empty row.

        Returns
        -------
        PredictionValues
            The constructed table.
        """
        rows = list(rows)
        values = np.zeros((len(rows), num_types), dtype=np.float64)
        empty = np.zeros(len(rows), dtype=bool)
        for i, row in enumerate(rows):
            if row is None or len(row) == 0:
                empty[i] = True
                continue
            if len(row) != num_types:
                raise ValueError(
                    f"row {i} has {len(row)} values, expected {num_types}"
                )
            values[i] = row
        return cls(values, empty)

    @property
    def num_nodes(self) -> int:
        return self._values.shape[0]

    @property
    def num_types(self) -> int:
        return self._values.shape[1]

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def empty_mask(self) -> np.ndarray:
        return self._empty

    def is_empty(self, row: int) -> bool:
        return bool(self._empty[row])

    def get(self, row: int, value_type: int) -> float:
        return float(self._values[row, value_type])

    def take(self, rows: Union[Sequence[int], np.ndarray]) -> "PredictionValues":
        """Return a new table made of the given rows, in the given order."""
        rows = np.asarray(rows, dtype=np.int64)
        return PredictionValues(self._values[rows], self._empty[rows])

    def to_frame(self, columns: Optional[Sequence] = None) -> pd.DataFrame:
        """
        View the table as a DataFrame, with NaN in empty rows.

        Parameters
        ----------
        columns : sequence, optional
            Column labels, e.g. the original class labels.
        """
        frame = pd.DataFrame(self._values.copy(), columns=columns)
        frame.loc[self._empty, :] = np.nan
        return frame

    def __len__(self) -> int:
        return self.num_nodes

    def __repr__(self) -> str:
        return (
            f"PredictionValues(num_nodes={self.num_nodes}, num_types={self.num_types}, "
            f"num_empty={int(self._empty.sum())})"
        )
