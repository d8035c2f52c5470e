import numpy as np

class Node:
    """
    有限元节点类。

    负责存储节点的全局 ID 以及三维空间坐标 (x, y, z)。
    ID 为从 0 开始的连续编号，直接作为全局系统矩阵的行/列索引；
    网格读入后节点只读，不保存电位等结果量。
    """
    __slots__ = ('id', 'coords')

    def __init__(self, node_id, x, y=0.0, z=0.0):
        self.id = int(node_id)
        self.coords = np.array([float(x), float(y), float(z)])
        self.coords.setflags(write=False)

    def __repr__(self):
        return f"Node({self.id}, {self.coords})"
