"""Fixed-binning histogram containers with under/overflow bins.

Bin numbering follows the usual HEP convention: index 0 is underflow,
``1..nbins`` are the regular bins, ``nbins + 1`` is overflow. Containers are
plain values: ``copy()`` gives an independent instance and nothing outside the
owner holds a reference to the count arrays.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class BinAxis:
    nbins: int
    low: float
    high: float

    def __post_init__(self) -> None:
        if self.nbins < 1:
            raise ValueError(f"axis needs at least one bin, got {self.nbins}")
        if not self.high > self.low:
            raise ValueError(f"axis range is empty: [{self.low}, {self.high})")

    @property
    def width(self) -> float:
        return (self.high - self.low) / self.nbins

    @property
    def edges(self) -> np.ndarray:
        return np.linspace(self.low, self.high, self.nbins + 1)

    @property
    def centers(self) -> np.ndarray:
        """Centers of the regular bins (length ``nbins``)."""

        edges = self.edges
        return 0.5 * (edges[:-1] + edges[1:])

    def bin_center(self, index: int) -> float:
        """Center of bin ``index``; flow bins are placed half a width outside the range."""

        return self.low + (index - 0.5) * self.width

    def bin_low_edge(self, index: int) -> float:
        return self.low + (index - 1) * self.width

    def find_bins(self, values: np.ndarray) -> np.ndarray:
        """Map values to bin indices, flows included."""

        x = np.asarray(values, dtype=np.float64)
        scaled = np.clip((x - self.low) / self.width, -1.0, float(self.nbins))
        idx = np.floor(scaled).astype(np.int64) + 1
        idx = np.where(x < self.low, 0, idx)
        idx = np.where(x >= self.high, self.nbins + 1, idx)
        return np.clip(idx, 0, self.nbins + 1)

    def find_bin(self, value: float) -> int:
        return int(self.find_bins(np.asarray([value]))[0])


def _finite(*arrays: np.ndarray) -> np.ndarray:
    mask = np.ones(len(arrays[0]), dtype=bool)
    for arr in arrays:
        mask &= np.isfinite(arr)
    return mask


@dataclass
class Hist1D:
    name: str
    title: str
    axis: BinAxis
    counts: np.ndarray = field(default=None, repr=False)  # type: ignore[assignment]
    entries: int = 0

    def __post_init__(self) -> None:
        if self.counts is None:
            self.counts = np.zeros(self.axis.nbins + 2, dtype=np.float64)
        elif self.counts.shape != (self.axis.nbins + 2,):
            raise ValueError(f"{self.name}: counts shape {self.counts.shape} does not match axis")

    @classmethod
    def from_contents(cls, name: str, title: str, axis: BinAxis, contents: np.ndarray) -> "Hist1D":
        """Build from regular-bin contents (flows stay empty)."""

        values = np.asarray(contents, dtype=np.float64)
        if values.shape != (axis.nbins,):
            raise ValueError(f"{name}: expected {axis.nbins} contents, got {values.shape}")
        counts = np.zeros(axis.nbins + 2, dtype=np.float64)
        counts[1:-1] = values
        return cls(name=name, title=title, axis=axis, counts=counts)

    def fill(self, value: float | np.ndarray, weight: float | np.ndarray = 1.0) -> None:
        x = np.atleast_1d(np.asarray(value, dtype=np.float64))
        w = np.broadcast_to(np.asarray(weight, dtype=np.float64), x.shape)
        keep = _finite(x, w)
        if not np.any(keep):
            return
        np.add.at(self.counts, self.axis.find_bins(x[keep]), w[keep])
        self.entries += int(np.count_nonzero(keep))

    def bin_content(self, index: int) -> float:
        return float(self.counts[index])

    @property
    def contents(self) -> np.ndarray:
        """Regular-bin contents, flows excluded."""

        return self.counts[1:-1]

    def total(self, include_flow: bool = True) -> float:
        return float(self.counts.sum() if include_flow else self.contents.sum())

    def copy(self) -> "Hist1D":
        return Hist1D(name=self.name, title=self.title, axis=self.axis, counts=self.counts.copy(), entries=self.entries)


@dataclass
class Hist2D:
    name: str
    title: str
    x_axis: BinAxis
    y_axis: BinAxis
    counts: np.ndarray = field(default=None, repr=False)  # type: ignore[assignment]
    entries: int = 0

    def __post_init__(self) -> None:
        shape = (self.x_axis.nbins + 2, self.y_axis.nbins + 2)
        if self.counts is None:
            self.counts = np.zeros(shape, dtype=np.float64)
        elif self.counts.shape != shape:
            raise ValueError(f"{self.name}: counts shape {self.counts.shape} does not match axes {shape}")

    def fill(
        self,
        x: float | np.ndarray,
        y: float | np.ndarray,
        weight: float | np.ndarray = 1.0,
    ) -> None:
        xs = np.atleast_1d(np.asarray(x, dtype=np.float64))
        ys = np.atleast_1d(np.asarray(y, dtype=np.float64))
        if xs.shape != ys.shape:
            raise ValueError(f"{self.name}: x and y shapes differ: {xs.shape} vs {ys.shape}")
        w = np.broadcast_to(np.asarray(weight, dtype=np.float64), xs.shape)
        keep = _finite(xs, ys, w)
        if not np.any(keep):
            return
        ix = self.x_axis.find_bins(xs[keep])
        iy = self.y_axis.find_bins(ys[keep])
        np.add.at(self.counts, (ix, iy), w[keep])
        self.entries += int(np.count_nonzero(keep))

    def bin_content(self, ix: int, iy: int) -> float:
        return float(self.counts[ix, iy])

    @property
    def contents(self) -> np.ndarray:
        return self.counts[1:-1, 1:-1]

    def total(self, include_flow: bool = True) -> float:
        return float(self.counts.sum() if include_flow else self.contents.sum())

    def profile_x(self) -> np.ndarray:
        """Mean Y per regular X bin, weighted by bin content; empty columns give 0."""

        weights = self.contents
        sums = weights.sum(axis=1)
        moments = weights @ self.y_axis.centers
        out = np.zeros(self.x_axis.nbins, dtype=np.float64)
        np.divide(moments, sums, out=out, where=sums > 0)
        return out

    def copy(self) -> "Hist2D":
        return Hist2D(
            name=self.name,
            title=self.title,
            x_axis=self.x_axis,
            y_axis=self.y_axis,
            counts=self.counts.copy(),
            entries=self.entries,
        )
