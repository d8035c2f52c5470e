import itertools
import numpy as np

class Quadrature:
    """
    数值积分模块
    负责生成一维高斯积分点 (Gauss-Legendre integration points) 和权重，
    并按单元类型给出对应的参考单元积分规则。
    """

    @staticmethod
    def get_points(order):
        """
        根据积分阶数返回积分点坐标和权重。

        Args:
            order (int): 积分点的数量 (1, 2, or 3)

        Returns:
            points (np.array): 局部坐标 ξ 的位置列表
            weights (np.array): 对应的权重列表
        """
        if order == 1:
            # 1点积分：坐标 = 0, 权重 = 2 (因为区间长度是 2)
            points = np.array([0.0])
            weights = np.array([2.0])

        elif order == 2:
            # 2点积分：用于六面体/三棱柱全积分
            # 坐标 = ±1/sqrt(3) ≈ ±0.57735, 权重 = 1.0
            val = 1.0 / np.sqrt(3.0) # 0.577350269189626
            points = np.array([-val, val])
            weights = np.array([1.0, 1.0])

        elif order == 3:
            # 3点积分：坐标 = ±sqrt(0.6), 0；权重 = 5/9, 8/9, 5/9
            val = np.sqrt(0.6) # 0.774596669241483
            points = np.array([-val, 0.0, val])
            weights = np.array([5.0/9.0, 8.0/9.0, 5.0/9.0])

        else:
            raise ValueError(f"Integration order {order} not supported yet.")

        return points, weights

    @staticmethod
    def tensor_points(order, dim=3):
        """
        一维规则的张量积：返回全部 order**dim 个组合。

        每一个坐标轴独立取遍所有积分点，权重为各轴权重之积。
        (三个坐标同步推进只会得到 order 个点，属于欠积分。)

        Returns:
            points (np.ndarray): (order**dim, dim)
            weights (np.ndarray): (order**dim,)
        """
        pts, wts = Quadrature.get_points(order)
        points = []
        weights = []
        for idx in itertools.product(range(len(pts)), repeat=dim):
            points.append([pts[i] for i in idx])
            weights.append(np.prod([wts[i] for i in idx]))
        return np.array(points), np.array(weights)

    @staticmethod
    def collapsed_prism_points(order=2):
        """
        三棱柱积分点：在参考立方体 [-1,1]^3 上取张量积高斯点，
        再通过塌缩坐标映射到 三角形 × 线段 的参考三棱柱。

            ξ = (1+u)(1-v)/4,  η = (1+v)/2,  ζ = w
            dξ dη = (1-v)/8 du dv

        order=2 时得到 8 个点，对线性三棱柱的刚度积分是精确的。
        """
        cube_pts, cube_wts = Quadrature.tensor_points(order, dim=3)
        u, v, w = cube_pts[:, 0], cube_pts[:, 1], cube_pts[:, 2]
        points = np.column_stack([
            0.25 * (1.0 + u) * (1.0 - v),
            0.5 * (1.0 + v),
            w,
        ])
        weights = cube_wts * (1.0 - v) / 8.0
        return points, weights

    @staticmethod
    def element_rule(element_type):
        """
        按单元类型返回参考单元上的积分规则 (points, weights)。

        单纯形单元 (线/三角形/四面体) 的形函数梯度为常数，
        因此只需在形心取一个点，权重即参考单元的测度。
        """
        key = getattr(element_type, 'value', element_type)
        try:
            points, weights = _RULES[key]
        except KeyError:
            raise ValueError(f"No quadrature rule for element type '{key}'") from None
        return points.copy(), weights.copy()


_RULES = {
    'line': (np.array([[0.0]]), np.array([2.0])),
    'triangle': (np.array([[1.0 / 3.0, 1.0 / 3.0]]), np.array([0.5])),
    'tetrahedron': (np.array([[0.25, 0.25, 0.25]]), np.array([1.0 / 6.0])),
    'hexahedron': Quadrature.tensor_points(2, dim=3),
    'prism': Quadrature.collapsed_prism_points(2),
}
