"""Factor graph holding parameter blocks and the prior residuals on them."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from scipy.sparse import csr_matrix

from .cost_function import CostFunction

logger = logging.getLogger(__name__)


class VariableType(Enum):
    """Types of parameter blocks."""
    SHOT_POSE = "shot_pose"
    RIG_CAMERA = "rig_camera"
    BIAS = "bias"
    POINT = "point"
    STD_DEVIATION = "std_deviation"


@dataclass
class Variable:
    """Parameter block in the factor graph."""

    id: str
    type: VariableType
    size: int
    value: Optional[np.ndarray] = None
    is_constant: bool = False

    def __post_init__(self):
        """Initialize variable with proper array shapes."""
        if self.value is not None:
            self.value = np.atleast_1d(np.asarray(self.value, dtype=float))
            if len(self.value) != self.size:
                raise ValueError(f"Variable {self.id}: value size {len(self.value)} != expected size {self.size}")

    def is_initialized(self) -> bool:
        """Check if variable has a value."""
        return self.value is not None

    def get_value(self) -> np.ndarray:
        """Get variable value, ensuring it exists."""
        if self.value is None:
            raise ValueError(f"Variable {self.id} has no value")
        return self.value.copy()

    def set_value(self, value: np.ndarray) -> None:
        """Set variable value with validation."""
        value = np.atleast_1d(np.asarray(value, dtype=float))
        if len(value) != self.size:
            raise ValueError(f"Variable {self.id}: new value size {len(value)} != expected size {self.size}")
        self.value = value.copy()


class Factor:
    """A cost function applied to an ordered list of variables."""

    def __init__(self, factor_id: str, variable_ids: List[str], cost_function: CostFunction):
        """Initialize factor.

        Args:
            factor_id: Unique identifier for this factor
            variable_ids: Variables passed as parameter blocks, in order
            cost_function: Bound residual functor
        """
        if len(variable_ids) != len(cost_function.parameter_block_sizes()):
            raise ValueError(
                f"Factor {factor_id}: {len(variable_ids)} variables given, cost function expects "
                f"{len(cost_function.parameter_block_sizes())} parameter blocks"
            )

        self.factor_id = factor_id
        self.variable_ids = list(variable_ids)
        self.cost_function = cost_function

    def _blocks(self, variables: Dict[str, np.ndarray]) -> List[np.ndarray]:
        return [variables[var_id] for var_id in self.variable_ids]

    def compute_residual(self, variables: Dict[str, np.ndarray]) -> np.ndarray:
        """Compute residual given variable values."""
        residual, _ = self.cost_function.evaluate(self._blocks(variables), compute_jacobians=False)
        return residual

    def compute_jacobian(self, variables: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """Compute Jacobian of residual with respect to each variable."""
        _, jacobians = self.cost_function.evaluate(self._blocks(variables))
        return dict(zip(self.variable_ids, jacobians))

    def residual_dimension(self) -> int:
        """Get dimension of residual vector."""
        return self.cost_function.num_residuals()


class FactorGraph:
    """Factor graph for prior-constrained bundle adjustment."""

    def __init__(self):
        """Initialize empty factor graph."""
        self.variables: Dict[str, Variable] = {}
        self.factors: Dict[str, Factor] = {}
        self._variable_ordering: List[str] = []
        self._factor_ordering: List[str] = []

    def add_variable(self, variable: Variable) -> None:
        """Add a variable to the graph."""
        if variable.id in self.variables:
            raise ValueError(f"Variable {variable.id} already exists")

        self.variables[variable.id] = variable
        self._variable_ordering.append(variable.id)
        logger.debug("Added %s variable %s", variable.type.value, variable.id)

    def add_factor(self, factor: Factor) -> None:
        """Add a factor to the graph."""
        if factor.factor_id in self.factors:
            raise ValueError(f"Factor {factor.factor_id} already exists")

        # Check that all referenced variables exist and match the block sizes
        block_sizes = factor.cost_function.parameter_block_sizes()
        for var_id, size in zip(factor.variable_ids, block_sizes):
            if var_id not in self.variables:
                raise ValueError(f"Factor {factor.factor_id} references unknown variable {var_id}")
            if self.variables[var_id].size != size:
                raise ValueError(
                    f"Factor {factor.factor_id}: variable {var_id} has size "
                    f"{self.variables[var_id].size}, expected {size}"
                )

        self.factors[factor.factor_id] = factor
        self._factor_ordering.append(factor.factor_id)
        logger.debug("Added factor %s on %s", factor.factor_id, factor.variable_ids)

    def get_variable(self, variable_id: str) -> Variable:
        """Get variable by ID."""
        if variable_id not in self.variables:
            raise ValueError(f"Variable {variable_id} not found")
        return self.variables[variable_id]

    def get_factor(self, factor_id: str) -> Factor:
        """Get factor by ID."""
        if factor_id not in self.factors:
            raise ValueError(f"Factor {factor_id} not found")
        return self.factors[factor_id]

    def get_variable_ids(self) -> List[str]:
        """Get list of all variable IDs in order."""
        return self._variable_ordering.copy()

    def get_factor_ids(self) -> List[str]:
        """Get list of all factor IDs in order."""
        return self._factor_ordering.copy()

    def _free_variable_offsets(self) -> Tuple[Dict[str, int], int]:
        offsets = {}
        offset = 0
        for var_id in self._variable_ordering:
            variable = self.variables[var_id]
            if not variable.is_constant:
                offsets[var_id] = offset
                offset += variable.size
        return offsets, offset

    def pack_variables(self) -> np.ndarray:
        """Pack free variable values into a single vector."""
        packed_values = []
        for var_id in self._variable_ordering:
            variable = self.variables[var_id]
            if not variable.is_constant:
                packed_values.append(variable.get_value())

        if not packed_values:
            return np.array([])

        return np.concatenate(packed_values)

    def unpack_variables(self, params: np.ndarray) -> None:
        """Unpack parameter vector into free variable values."""
        offset = 0
        for var_id in self._variable_ordering:
            variable = self.variables[var_id]
            if not variable.is_constant:
                end_offset = offset + variable.size
                if end_offset > len(params):
                    raise ValueError(f"Not enough parameters for variable {var_id}")

                variable.set_value(params[offset:end_offset])
                offset = end_offset

        if offset != len(params):
            raise ValueError(f"Parameter vector size mismatch: {offset} vs {len(params)}")

    def _factor_values(self, factor: Factor) -> Dict[str, np.ndarray]:
        var_values = {}
        for var_id in factor.variable_ids:
            variable = self.variables[var_id]
            if not variable.is_initialized():
                raise ValueError(f"Variable {var_id} required by factor {factor.factor_id} is not initialized")
            var_values[var_id] = variable.get_value()
        return var_values

    def compute_all_residuals(self) -> np.ndarray:
        """Compute residuals for all factors.

        Returns:
            Concatenated residual vector
        """
        residuals = [
            self.factors[factor_id].compute_residual(self._factor_values(self.factors[factor_id]))
            for factor_id in self._factor_ordering
        ]

        if not residuals:
            return np.array([])

        return np.concatenate(residuals)

    def compute_jacobian(self) -> csr_matrix:
        """Assemble the sparse Jacobian with respect to free variables.

        Rows follow the factor ordering, columns the packed variable vector.
        """
        offsets, n_params = self._free_variable_offsets()

        rows = []
        cols = []
        data = []
        residual_offset = 0

        for factor_id in self._factor_ordering:
            factor = self.factors[factor_id]
            residual_dim = factor.residual_dimension()
            jacobians = factor.compute_jacobian(self._factor_values(factor))

            for var_id, J in jacobians.items():
                if var_id not in offsets:
                    continue
                r, c = np.indices(J.shape)
                rows.append(residual_offset + r.ravel())
                cols.append(offsets[var_id] + c.ravel())
                data.append(J.ravel())

            residual_offset += residual_dim

        if not data:
            return csr_matrix((residual_offset, n_params))

        return csr_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
            shape=(residual_offset, n_params),
        )

    def compute_jacobian_structure(self) -> Tuple[List[int], List[int]]:
        """Compute sparsity structure of Jacobian matrix.

        Returns:
            Tuple of (row_indices, col_indices) for sparse Jacobian
        """
        row_indices = []
        col_indices = []

        offsets, _ = self._free_variable_offsets()
        residual_offset = 0

        for factor_id in self._factor_ordering:
            factor = self.factors[factor_id]
            residual_dim = factor.residual_dimension()

            for var_id in factor.variable_ids:
                if var_id in offsets:
                    variable = self.variables[var_id]
                    for r in range(residual_dim):
                        for c in range(variable.size):
                            row_indices.append(residual_offset + r)
                            col_indices.append(offsets[var_id] + c)

            residual_offset += residual_dim

        return row_indices, col_indices

    def jacobian_sparsity(self) -> csr_matrix:
        """Boolean sparsity pattern of the Jacobian, for sparse solvers."""
        rows, cols = self.compute_jacobian_structure()
        _, n_params = self._free_variable_offsets()
        n_residuals = sum(f.residual_dimension() for f in self.factors.values())
        return csr_matrix(
            (np.ones(len(rows), dtype=bool), (rows, cols)), shape=(n_residuals, n_params)
        )

    def summary(self) -> Dict[str, Any]:
        """Get summary information about the factor graph."""
        var_type_counts = {}
        total_var_size = 0
        constant_vars = 0

        for variable in self.variables.values():
            var_type = variable.type.value
            var_type_counts[var_type] = var_type_counts.get(var_type, 0) + 1
            total_var_size += variable.size
            if variable.is_constant:
                constant_vars += 1

        factor_type_counts = {}
        total_residual_size = 0

        for factor in self.factors.values():
            factor_type = type(factor.cost_function.functor).__name__
            factor_type_counts[factor_type] = factor_type_counts.get(factor_type, 0) + 1
            total_residual_size += factor.residual_dimension()

        return {
            "variables": {
                "total": len(self.variables),
                "constant": constant_vars,
                "free": len(self.variables) - constant_vars,
                "total_parameters": total_var_size,
                "by_type": var_type_counts
            },
            "factors": {
                "total": len(self.factors),
                "total_residuals": total_residual_size,
                "by_type": factor_type_counts
            }
        }
