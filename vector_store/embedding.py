"""Fixed-dimension float32 embedding vectors and their byte encoding."""

from typing import Iterator, Sequence, Union

import numpy as np

from core.errors import DimensionMismatch

# IEEE-754 single precision, little-endian.
VECTOR_DTYPE = np.dtype("<f4")
BYTES_PER_COMPONENT = VECTOR_DTYPE.itemsize


class EmbeddingVector:
    """Immutable float32 vector.

    Equality is byte equality of the float32 encoding, so a vector restored
    with ``from_bytes`` compares equal to the one that was written.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Union[Sequence[float], np.ndarray]) -> None:
        arr = np.array(values, dtype=VECTOR_DTYPE)
        if arr.ndim != 1:
            raise DimensionMismatch(
                f"Embedding must be one-dimensional, got shape {arr.shape}"
            )
        if arr.size == 0:
            raise DimensionMismatch("Embedding must not be empty", actual=0)
        arr.flags.writeable = False
        self._values = arr

    @classmethod
    def from_bytes(cls, buffer: bytes, dimension: int) -> "EmbeddingVector":
        """Decode a D x 4 byte little-endian buffer."""
        size = len(buffer)
        if size % BYTES_PER_COMPONENT:
            raise DimensionMismatch(
                f"Embedding buffer of {size} bytes is not a multiple of "
                f"{BYTES_PER_COMPONENT}",
                expected=dimension,
            )
        actual = size // BYTES_PER_COMPONENT
        if actual != dimension:
            raise DimensionMismatch(
                f"Embedding has {actual} components, expected {dimension}",
                expected=dimension,
                actual=actual,
            )
        return cls(np.frombuffer(buffer, dtype=VECTOR_DTYPE))

    def to_bytes(self) -> bytes:
        return self._values.tobytes()

    @property
    def dimension(self) -> int:
        return int(self._values.size)

    def as_array(self) -> np.ndarray:
        """Return the read-only float32 array backing this vector."""
        return self._values

    def __len__(self) -> int:
        return self.dimension

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmbeddingVector):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        head = ", ".join(f"{v:.4f}" for v in self._values[:3])
        tail = ", ..." if self.dimension > 3 else ""
        return f"EmbeddingVector(dim={self.dimension}, [{head}{tail}])"
