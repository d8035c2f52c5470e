# 文件: pyscfea/core/exceptions.py
"""
异常类型定义

所有库内错误均派生自 SCFEAError，同时继承对应的内置异常，
因此只捕获 ValueError / ArithmeticError 的调用方仍然可以工作。
"""


class SCFEAError(Exception):
    """PySCFEA 异常基类"""


class ParseError(SCFEAError, ValueError):
    """网格文件结构错误 (版本、数值字段、未知节点、单元类型等)"""

    def __init__(self, message, line_number=None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class FormatError(SCFEAError, ValueError):
    """材料属性文件格式错误"""

    def __init__(self, message, line_number=None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ConstructionError(SCFEAError, ValueError):
    """单元构造错误 (节点数量与单元类型不符)"""


class DegenerateElementError(SCFEAError, ArithmeticError):
    """雅可比行列式非正：单元翻转或体积为零"""

    def __init__(self, element_id, message):
        self.element_id = element_id
        super().__init__(f"Element {element_id}: {message}")


class MissingMaterialPropertyError(SCFEAError, LookupError):
    """物理组未配置材料属性 (或缺少所需的属性项)"""

    def __init__(self, group, message=None):
        self.group = group
        super().__init__(message or f"No material properties for physical group '{group}'")

    def __str__(self):
        # LookupError 默认会给消息加引号，这里保持原样输出
        return self.args[0]


class DimensionMismatchError(SCFEAError, ValueError):
    """矩阵/向量尺寸不匹配"""


class SingularMatrixError(SCFEAError, ArithmeticError):
    """求解过程中遇到零主元"""

    def __init__(self, row, message=None):
        self.row = row
        super().__init__(message or f"Zero diagonal element found at row {row}")


class SolverStateError(SCFEAError, RuntimeError):
    """求解流程的非法状态转移"""


class BoundaryConditionError(SCFEAError, ValueError):
    """边界条件未解析或解析失败"""
