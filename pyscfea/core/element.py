import numpy as np
from abc import ABC, abstractmethod
from enum import Enum

from .exceptions import ConstructionError, DegenerateElementError, DimensionMismatchError
from .quadrature import Quadrature

# 相对于单元尺寸的雅可比行列式下限，低于该值视为零体积
_DET_RTOL = 1e-12


class ElementType(Enum):
    LINE = 'line'
    TRIANGLE = 'triangle'
    TETRAHEDRON = 'tetrahedron'
    HEXAHEDRON = 'hexahedron'
    PRISM = 'prism'


class BaseElement(ABC):
    """
    有限元单元抽象基类。

    定义所有单元类型的通用属性和接口：节点、物理组以及标量电位场的
    形函数、雅可比、形函数全局梯度和单元电导 (刚度) 矩阵。
    每个节点只有一个自由度 (电位)，节点 ID 即全局自由度索引。

    子类只需给出形函数及其对自然坐标的导数 (_calc_shape_functions)，
    其余计算在基类中统一完成；积分规则由 Quadrature.element_rule 按类型提供。
    """
    element_type = None
    num_nodes = None
    # 自然坐标 (参数空间) 的维数：线 1，三角形 2，体单元 3
    dim = None
    # 参考单元中心的自然坐标
    reference_center = None

    def __init__(self, element_id, nodes, physical_group=None):
        """
        初始化单元基础属性。

        Args:
            element_id (int): 单元唯一标识 ID
            nodes (list): 节点对象列表 (需具备 id 与 coords 属性)，顺序即局部编号
            physical_group (str): 物理组名称，用于查找材料与边界条件

        Raises:
            ConstructionError: 节点数量与单元类型不符
        """
        nodes = list(nodes)
        if len(nodes) != self.num_nodes:
            raise ConstructionError(
                f"{type(self).__name__} requires {self.num_nodes} nodes, got {len(nodes)}"
            )
        self.id = element_id
        self.nodes = nodes
        self.physical_group = physical_group

        # 预先提取节点坐标矩阵，优化后续计算效率
        self.node_coords_matrix = np.array([n.coords for n in nodes])

    @property
    def type(self):
        return self.element_type

    def get_node_indices(self):
        """返回单元节点的全局索引 (即全局自由度索引)。"""
        return np.array([n.id for n in self.nodes], dtype=int)

    def __repr__(self):
        return f"{type(self).__name__}(id={self.id}, nodes={self.get_node_indices().tolist()}, group={self.physical_group!r})"

    @abstractmethod
    def _calc_shape_functions(self, local):
        """
        抽象方法：计算形函数值及其局部导数。

        Args:
            local (np.ndarray): 长度为 dim 的自然坐标

        Returns:
            N: 形函数向量 (num_nodes,)
            dN_dlocal: 局部导数矩阵 (dim, num_nodes)
        """

    def _local(self, natural):
        """截取前 dim 个分量，允许统一以 (ξ, η, ζ) 形式传入。"""
        local = np.asarray(natural, dtype=float).ravel()
        if local.size < self.dim:
            raise DimensionMismatchError(
                f"{type(self).__name__} needs {self.dim} natural coordinates, got {local.size}"
            )
        return local[:self.dim]

    def _calc_gradients(self, natural):
        """
        计算形函数的全局坐标梯度 (num_nodes×3) 与雅可比行列式 detJ。

        J = dN/dlocal @ X 为 (dim×3) 的映射矩阵。
        体单元 (dim=3)：dN/dx = inv(J) @ dN/dlocal，detJ = det(J)。
        嵌入三维空间的线/三角形单元：使用度量张量 G = J Jᵀ，
            dN/dx = Jᵀ inv(G) @ dN/dlocal，detJ = sqrt(det(G))，
        梯度落在单元的切空间内。
        """
        local = self._local(natural)
        _, dN_dlocal = self._calc_shape_functions(local)
        J = dN_dlocal @ self.node_coords_matrix

        # 单元尺寸，用于判断行列式是否“足够”大
        extent = np.ptp(self.node_coords_matrix, axis=0).max()
        det_floor = _DET_RTOL * extent ** self.dim

        if self.dim == 3:
            detJ = np.linalg.det(J)
            if not detJ > det_floor:
                raise DegenerateElementError(
                    self.id, f"non-positive Jacobian determinant {detJ:.3e} at natural coordinates {local.tolist()}"
                )
            dN_dglobal = np.linalg.solve(J, dN_dlocal)
        else:
            G = J @ J.T
            detG = np.linalg.det(G)
            if not detG > det_floor ** 2:
                raise DegenerateElementError(
                    self.id, f"zero-measure {self.element_type.value} (metric determinant {detG:.3e})"
                )
            detJ = np.sqrt(detG)
            dN_dglobal = J.T @ np.linalg.solve(G, dN_dlocal)

        return dN_dglobal.T, detJ

    def shape_functions(self, natural):
        """自然坐标处的形函数值，满足单位分解 ΣN_i = 1。"""
        N, _ = self._calc_shape_functions(self._local(natural))
        return N

    def shape_function_gradients(self, natural):
        """自然坐标处的形函数全局梯度 (num_nodes×3)。"""
        grads, _ = self._calc_gradients(natural)
        return grads

    def jacobian(self, natural):
        """
        坐标映射的雅可比行列式。

        单纯形单元为常数：线单元 L/2，三角形 2A，四面体 6V。
        """
        _, detJ = self._calc_gradients(natural)
        return detJ

    def stiffness_matrix(self, conductivity):
        """
        执行数值积分，计算单元电导矩阵 Ke (num_nodes×num_nodes)。

            Ke_ij = σ ∫ ∇N_i · ∇N_j dΩ ≈ Σ_g w_g |J_g| σ ∇N_i · ∇N_j

        单纯形单元只有一个积分点 (梯度为常数，结果精确)；
        六面体与三棱柱使用 2×2×2 全积分。
        """
        conductivity = float(conductivity)
        Ke = np.zeros((self.num_nodes, self.num_nodes))

        points, weights = Quadrature.element_rule(self.element_type)
        for point, weight in zip(points, weights):
            B, detJ = self._calc_gradients(point)
            Ke += (B @ B.T) * (weight * detJ * conductivity)

        # 消除积分累加带来的舍入不对称
        return 0.5 * (Ke + Ke.T)

    def measure(self):
        """单元的长度 / 面积 / 体积。"""
        points, weights = Quadrature.element_rule(self.element_type)
        return float(sum(w * self.jacobian(p) for p, w in zip(points, weights)))

    def map_to_global(self, natural):
        """自然坐标 -> 全局坐标。"""
        return self.shape_functions(natural) @ self.node_coords_matrix

    def centroid(self):
        return self.map_to_global(self.reference_center)

    def natural_coordinates(self, point, tol=1e-12, max_iter=50):
        """
        反求全局点对应的自然坐标 (等参映射的逆)。

        采用 Gauss-Newton 迭代：Δξ = inv(J Jᵀ) J (x - x(ξ))。
        对单纯形单元映射为仿射，一步即收敛；对线/三角形单元返回
        点在单元所在直线/平面上的投影坐标。

        Raises:
            ValueError: 迭代未收敛
        """
        target = np.zeros(3)
        p = np.asarray(point, dtype=float).ravel()
        target[:p.size] = p[:3]

        local = np.array(self.reference_center, dtype=float)
        for _ in range(max_iter):
            N, dN_dlocal = self._calc_shape_functions(local)
            residual = target - N @ self.node_coords_matrix
            J = dN_dlocal @ self.node_coords_matrix
            delta = np.linalg.solve(J @ J.T, J @ residual)
            local = local + delta
            if np.max(np.abs(delta)) < tol:
                return local
        raise ValueError(
            f"Element {self.id}: natural coordinate inversion did not converge for point {target.tolist()}"
        )

    def current_density(self, potentials, conductivity, natural=None):
        """
        单元内电流密度 J = -σ ∇φ (默认在参考单元中心取值)。

        Args:
            potentials (np.ndarray): 全局节点电位向量
            conductivity (float): 单元电导率
            natural: 取值点的自然坐标，默认为单元中心
        """
        if natural is None:
            natural = self.reference_center
        phi_e = np.asarray(potentials, dtype=float)[self.get_node_indices()]
        grads = self.shape_function_gradients(natural)
        return -float(conductivity) * (grads.T @ phi_e)


class LineElement(BaseElement):
    """
    2 节点线单元。ξ ∈ [-1, 1]，截面积取单位 1。
    """
    element_type = ElementType.LINE
    num_nodes = 2
    dim = 1
    reference_center = (0.0,)

    def _calc_shape_functions(self, local):
        xi = local[0]
        N = np.array([0.5 * (1 - xi), 0.5 * (1 + xi)])
        dN_dxi = np.array([[-0.5, 0.5]])
        return N, dN_dxi


class TriangleElement(BaseElement):
    """
    3 节点线性三角形单元，厚度取单位 1。

    参考单元顶点 (0,0), (1,0), (0,1)：
        N1 = 1 - ξ - η,  N2 = ξ,  N3 = η
    """
    element_type = ElementType.TRIANGLE
    num_nodes = 3
    dim = 2
    reference_center = (1.0 / 3.0, 1.0 / 3.0)

    def _calc_shape_functions(self, local):
        xi, eta = local
        N = np.array([1.0 - xi - eta, xi, eta])
        dN_dlocal = np.array([
            [-1.0, 1.0, 0.0],
            [-1.0, 0.0, 1.0],
        ])
        return N, dN_dlocal


class TetrahedronElement(BaseElement):
    """
    4 节点线性四面体单元。

        N1 = 1 - ξ - η - ζ,  N2 = ξ,  N3 = η,  N4 = ζ
    """
    element_type = ElementType.TETRAHEDRON
    num_nodes = 4
    dim = 3
    reference_center = (0.25, 0.25, 0.25)

    def _calc_shape_functions(self, local):
        xi, eta, zeta = local
        N = np.array([1.0 - xi - eta - zeta, xi, eta, zeta])
        dN_dlocal = np.array([
            [-1.0, 1.0, 0.0, 0.0],
            [-1.0, 0.0, 1.0, 0.0],
            [-1.0, 0.0, 0.0, 1.0],
        ])
        return N, dN_dlocal


class HexahedronElement(BaseElement):
    """
    标准 8 节点六面体单元。
    采用 2×2×2 高斯点全积分。
    """
    element_type = ElementType.HEXAHEDRON
    num_nodes = 8
    dim = 3
    reference_center = (0.0, 0.0, 0.0)

    def _calc_shape_functions(self, local):
        """
        计算局部坐标 (xi, eta, zeta) 处的三线性插值形函数。

        Returns:
            N: 形函数向量 (8,)
            dN_dxi: 局部导数矩阵 (3, 8)
        """
        xi, eta, zeta = local
        # 预计算位置变量
        rp, rm = 1 + xi, 1 - xi
        sp, sm = 1 + eta, 1 - eta
        tp, tm = 1 + zeta, 1 - zeta

        # 1. 计算 8 个形函数的值
        N = 0.125 * np.array([
            rm * sm * tm, rp * sm * tm, rp * sp * tm, rm * sp * tm,
            rm * sm * tp, rp * sm * tp, rp * sp * tp, rm * sp * tp
        ])

        # 2. 计算形函数对局部坐标 (xi, eta, zeta) 的偏导数
        dN_dxi = np.zeros((3, 8))

        # dN/dxi
        dN_dxi[0, :] = 0.125 * np.array([
            -(sm * tm), (sm * tm), (sp * tm), -(sp * tm),
            -(sm * tp), (sm * tp), (sp * tp), -(sp * tp)
        ])
        # dN/deta
        dN_dxi[1, :] = 0.125 * np.array([
            -(rm * tm), -(rp * tm), (rp * tm), (rm * tm),
            -(rm * tp), -(rp * tp), (rp * tp), (rm * tp)
        ])
        # dN/dzeta
        dN_dxi[2, :] = 0.125 * np.array([
            -(rm * sm), -(rp * sm), -(rp * sp), -(rm * sp),
            (rm * sm),  (rp * sm),  (rp * sp),  (rm * sp)
        ])

        return N, dN_dxi


class PrismElement(BaseElement):
    """
    6 节点三棱柱单元 (三角形 × 线段)。

    截面使用三角形面积坐标 (ξ, η)，轴向 ζ ∈ [-1, 1]；
    节点 1-3 位于 ζ = -1 底面，4-6 位于 ζ = +1 顶面。
    """
    element_type = ElementType.PRISM
    num_nodes = 6
    dim = 3
    reference_center = (1.0 / 3.0, 1.0 / 3.0, 0.0)

    def _calc_shape_functions(self, local):
        xi, eta, zeta = local
        L1 = 1.0 - xi - eta
        zm, zp = 0.5 * (1 - zeta), 0.5 * (1 + zeta)

        N = np.array([L1 * zm, xi * zm, eta * zm, L1 * zp, xi * zp, eta * zp])

        dN_dlocal = np.array([
            [-zm, zm, 0.0, -zp, zp, 0.0],
            [-zm, 0.0, zm, -zp, 0.0, zp],
            [-0.5 * L1, -0.5 * xi, -0.5 * eta, 0.5 * L1, 0.5 * xi, 0.5 * eta],
        ])
        return N, dN_dlocal


# 单元类型 -> 单元类 的分派表
ELEMENT_CLASSES = {
    ElementType.LINE: LineElement,
    ElementType.TRIANGLE: TriangleElement,
    ElementType.TETRAHEDRON: TetrahedronElement,
    ElementType.HEXAHEDRON: HexahedronElement,
    ElementType.PRISM: PrismElement,
}


def create_element(element_type, element_id, nodes, physical_group=None):
    """按类型 (ElementType 或其字符串值) 创建单元。"""
    try:
        cls = ELEMENT_CLASSES[ElementType(element_type)]
    except ValueError:
        raise ConstructionError(f"Unknown element type '{element_type}'") from None
    return cls(element_id, nodes, physical_group)
