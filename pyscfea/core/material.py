# 文件: pyscfea/core/material.py
"""
材料属性

材料以“名称 -> 标量”的映射描述，刚度计算只读取 conductivity。
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .exceptions import MissingMaterialPropertyError

CONDUCTIVITY = 'conductivity'

_MISSING = object()


@dataclass
class MaterialProperties:
    """
    材料属性集合

    Attributes:
        properties: 属性字典 {name: value}
        name: 所属物理组/材料名称 (用于错误消息)

    Example:
        props = MaterialProperties({'conductivity': 5.8e7}, name='copper')
        props.conductivity      # 5.8e7
        props.get_property('permittivity', 1.0)
    """
    properties: Dict[str, float] = field(default_factory=dict)
    name: Optional[str] = None

    def __post_init__(self):
        self.properties = {str(k): float(v) for k, v in self.properties.items()}

    @classmethod
    def from_conductivity(cls, conductivity: float, name: Optional[str] = None) -> 'MaterialProperties':
        return cls({CONDUCTIVITY: conductivity}, name=name)

    @property
    def conductivity(self) -> float:
        return self.get_property(CONDUCTIVITY)

    @conductivity.setter
    def conductivity(self, value: float):
        self.properties[CONDUCTIVITY] = float(value)

    def get_property(self, key: str, default=_MISSING) -> float:
        """
        读取属性值

        Raises:
            MissingMaterialPropertyError: 属性不存在且未给出默认值
        """
        if key in self.properties:
            return self.properties[key]
        if default is not _MISSING:
            return default
        raise MissingMaterialPropertyError(
            self.name,
            f"Material '{self.name}' has no property '{key}'"
        )

    def __contains__(self, key):
        return key in self.properties
