"""
PySCFEA: 稳恒电流场有限元求解器

    from pyscfea import StationaryCurrentSolver, Mesh, DirichletBoundaryCondition
"""
from .core import Mesh, MaterialProperties, Node, ElementType, SCFEAError
from .solver import (
    StationaryCurrentSolver,
    SolverState,
    DirichletBoundaryCondition,
    NeumannBoundaryCondition,
)

__version__ = "0.1.0"

__all__ = [
    'Mesh',
    'MaterialProperties',
    'Node',
    'ElementType',
    'SCFEAError',
    'StationaryCurrentSolver',
    'SolverState',
    'DirichletBoundaryCondition',
    'NeumannBoundaryCondition',
]
