from .sparse_matrix import SparseMatrix, CSRMatrix
from .assembler import GlobalAssembler
from .boundary_conditions import (
    BoundaryCondition,
    BoundaryKind,
    DirichletBoundaryCondition,
    NeumannBoundaryCondition,
    create_boundary_condition,
)
from .LinearSolver import LinearSolver, SolveResult
from .stationary_current_solver import (
    DEFAULT_SOLVER_CONFIG,
    SolverState,
    StationaryCurrentSolver,
    merge_solver_config,
)

__all__ = [
    'SparseMatrix',
    'CSRMatrix',
    'GlobalAssembler',
    'BoundaryCondition',
    'BoundaryKind',
    'DirichletBoundaryCondition',
    'NeumannBoundaryCondition',
    'create_boundary_condition',
    'LinearSolver',
    'SolveResult',
    'DEFAULT_SOLVER_CONFIG',
    'SolverState',
    'StationaryCurrentSolver',
    'merge_solver_config',
]
