"""Residual functor base class and registry."""

from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np

from .cost_function import CostFunction


class ResidualFunctor(ABC):
    """Base class for residual functors.

    A functor is constructed once with its prior and evaluated many times
    with the current parameter blocks. It holds no mutable state and never
    writes to the blocks it reads.
    """

    @abstractmethod
    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        """Compute residual given the parameter blocks."""
        pass

    @abstractmethod
    def residual_dimension(self) -> int:
        """Get residual dimension."""
        pass

    @abstractmethod
    def parameter_block_sizes(self) -> List[int]:
        """Get the sizes of the parameter blocks this functor reads."""
        pass

    @abstractmethod
    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        """Compute one (residual_dimension, block_size) Jacobian per block."""
        pass

    @classmethod
    def create(cls, *args, **kwargs) -> CostFunction:
        """Build the functor and bind it to its fixed arities."""
        return CostFunction(cls(*args, **kwargs))


class ResidualRegistry:
    """Registry for residual functor types."""

    _residual_types = {}

    @classmethod
    def register(cls, residual_type: str):
        """Class decorator registering a functor under a type string."""
        def decorator(residual_class):
            cls._residual_types[residual_type] = residual_class
            return residual_class
        return decorator

    @classmethod
    def get_residual_class(cls, residual_type: str):
        """Get residual class by type string."""
        if residual_type not in cls._residual_types:
            raise ValueError(f"Unknown residual type: {residual_type}")
        return cls._residual_types[residual_type]

    @classmethod
    def list_residual_types(cls) -> List[str]:
        """List all available residual types."""
        return list(cls._residual_types.keys())

    @classmethod
    def create_residual(cls, residual_type: str, **kwargs) -> ResidualFunctor:
        """Create residual functor of specified type."""
        residual_class = cls.get_residual_class(residual_type)
        return residual_class(**kwargs)
