# 文件: pyscfea/core/__init__.py
"""
PySCFEA 核心模块

导出节点、单元、网格、材料与异常类型
"""

# ==============================================================================
# 单元
# ==============================================================================
from .element import (
    BaseElement,
    ElementType,
    LineElement,
    TriangleElement,
    TetrahedronElement,
    HexahedronElement,
    PrismElement,
    ELEMENT_CLASSES,
    create_element,
)

# ==============================================================================
# 网格与材料
# ==============================================================================
from .mesh import Mesh
from .material import MaterialProperties, CONDUCTIVITY

# ==============================================================================
# 异常
# ==============================================================================
from .exceptions import (
    SCFEAError,
    ParseError,
    FormatError,
    ConstructionError,
    DegenerateElementError,
    MissingMaterialPropertyError,
    DimensionMismatchError,
    SingularMatrixError,
    SolverStateError,
    BoundaryConditionError,
)

# ==============================================================================
# 其他
# ==============================================================================
from .node import Node
from .quadrature import Quadrature


__all__ = [
    # === 单元 ===
    'BaseElement',
    'ElementType',
    'LineElement',
    'TriangleElement',
    'TetrahedronElement',
    'HexahedronElement',
    'PrismElement',
    'ELEMENT_CLASSES',
    'create_element',

    # === 网格与材料 ===
    'Mesh',
    'MaterialProperties',
    'CONDUCTIVITY',

    # === 异常 ===
    'SCFEAError',
    'ParseError',
    'FormatError',
    'ConstructionError',
    'DegenerateElementError',
    'MissingMaterialPropertyError',
    'DimensionMismatchError',
    'SingularMatrixError',
    'SolverStateError',
    'BoundaryConditionError',

    # === 其他 ===
    'Node',
    'Quadrature',
]
