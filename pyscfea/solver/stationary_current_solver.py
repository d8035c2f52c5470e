# 文件: pyscfea/solver/stationary_current_solver.py
"""
稳恒电流场求解流程

    load_mesh -> set_material_properties / add_boundary_condition
              -> assemble -> apply_boundary_conditions -> solve -> get_solution

状态严格前进：UNASSEMBLED -> ASSEMBLED -> BOUNDARY_APPLIED -> SOLVED。
任意状态下调用 assemble() 都会丢弃旧的方程组并完整重建。
某一阶段失败时，状态停留在该阶段之前，不会前进。
"""
import logging
from enum import Enum
from numbers import Real
from pathlib import Path

import numpy as np

from ..core.exceptions import SolverStateError
from ..core.material import MaterialProperties
from ..core.mesh import Mesh
from .assembler import GlobalAssembler
from .boundary_conditions import BoundaryCondition, BoundaryKind
from .LinearSolver import LinearSolver

logger = logging.getLogger(__name__)

DEFAULT_SOLVER_CONFIG = {
    "method": "gauss_seidel",
    "tol": 1e-10,
    "max_iter": 1000,
    "default_conductivity": None,
    "workers": 1,
}


class SolverState(Enum):
    UNASSEMBLED = 'unassembled'
    ASSEMBLED = 'assembled'
    BOUNDARY_APPLIED = 'boundary_applied'
    SOLVED = 'solved'


def merge_solver_config(solver_config=None):
    """
    在默认配置上合并用户配置。

    Raises:
        ValueError: 未知配置项、未知求解方法或非法数值
    """
    config = dict(DEFAULT_SOLVER_CONFIG)
    if solver_config:
        unknown = set(solver_config) - set(DEFAULT_SOLVER_CONFIG)
        if unknown:
            raise ValueError(f"Unknown solver config keys: {sorted(unknown)}")
        config.update(solver_config)

    if config["method"] not in LinearSolver.METHODS:
        raise ValueError(f"Unknown solver method: {config['method']}")
    if not config["tol"] > 0:
        raise ValueError(f"Solver tolerance must be positive, got {config['tol']}")
    if int(config["max_iter"]) < 1:
        raise ValueError(f"max_iter must be at least 1, got {config['max_iter']}")
    if int(config["workers"]) < 1:
        raise ValueError(f"workers must be at least 1, got {config['workers']}")
    if config["default_conductivity"] is not None:
        config["default_conductivity"] = float(config["default_conductivity"])
    return config


class StationaryCurrentSolver:
    """
    稳恒电流 (直流传导) 问题求解器

    Example:
        solver = StationaryCurrentSolver(solver_config={"method": "direct"})
        solver.load_mesh("model.msh")
        solver.set_material_properties("copper", 5.8e7)
        solver.add_boundary_condition(DirichletBoundaryCondition("anode", 1.0))
        solver.add_boundary_condition(DirichletBoundaryCondition("cathode", 0.0))
        solver.assemble()
        solver.apply_boundary_conditions()
        solver.solve()
        phi = solver.get_solution()
    """

    def __init__(self, mesh=None, solver_config=None):
        self.solver_config = merge_solver_config(solver_config)
        self.mesh = mesh
        self.materials = {}
        self.boundary_conditions = []

        self.state = SolverState.UNASSEMBLED
        self.K_global = None
        self.F_global = None
        self.result = None

    # ------------------------------------------------------------------
    # 输入
    # ------------------------------------------------------------------
    def _invalidate(self, state):
        """回退到仍然有效的阶段，丢弃其后的结果。"""
        order = list(SolverState)
        if order.index(self.state) <= order.index(state):
            return
        logger.debug("Solver state reset: %s -> %s", self.state.value, state.value)
        self.state = state
        self.result = None
        if state is SolverState.UNASSEMBLED:
            self.K_global = None
            self.F_global = None

    def load_mesh(self, source):
        """
        读入网格。

        Args:
            source (str | Path | Mesh): Gmsh 文件路径或已构建的 Mesh
        """
        if isinstance(source, Mesh):
            mesh = source
        else:
            from ..utils.gmsh_reader import GmshParser
            mesh = GmshParser().read(source)

        self._invalidate(SolverState.UNASSEMBLED)
        self.mesh = mesh
        for bc in self.boundary_conditions:
            if bc.physical_group is not None:
                bc.node_indices = None
        logger.info("Mesh loaded: %d nodes, %d elements", mesh.n_nodes, mesh.n_elements)
        return mesh

    def set_material_properties(self, group, props):
        """
        为物理组指定材料。

        Args:
            group (str): 物理组名称
            props (MaterialProperties | float | dict): 材料属性；
                单个数值视为电导率
        """
        if isinstance(props, MaterialProperties):
            material = props
            if material.name is None:
                material.name = group
        elif isinstance(props, Real):
            material = MaterialProperties.from_conductivity(props, name=group)
        else:
            material = MaterialProperties(dict(props), name=group)

        self._invalidate(SolverState.UNASSEMBLED)
        self.materials[group] = material

    def set_materials(self, materials):
        """批量指定材料 {group: conductivity | MaterialProperties}。"""
        for group, props in materials.items():
            self.set_material_properties(group, props)

    def add_boundary_condition(self, condition):
        """
        追加边界条件；施加顺序即追加顺序。

        已组装未施加时保留组装结果；边界条件已施加后追加，
        方程组作废，需要重新 assemble()。
        """
        if not isinstance(condition, BoundaryCondition):
            raise TypeError(f"Expected a BoundaryCondition, got {type(condition).__name__}")
        if self.state is not SolverState.ASSEMBLED:
            self._invalidate(SolverState.UNASSEMBLED)
        self.boundary_conditions.append(condition)

    # ------------------------------------------------------------------
    # 流程
    # ------------------------------------------------------------------
    def assemble(self):
        """组装全局矩阵与零载荷向量 (总是完整重建)。"""
        self._invalidate(SolverState.UNASSEMBLED)
        if self.mesh is None:
            raise SolverStateError("No mesh loaded: call load_mesh() before assemble()")

        assembler = GlobalAssembler(
            self.mesh,
            self.materials,
            default_conductivity=self.solver_config["default_conductivity"],
            workers=self.solver_config["workers"],
        )
        self.K_global, self.F_global = assembler.assemble()
        self.state = SolverState.ASSEMBLED
        return self.K_global, self.F_global

    def apply_boundary_conditions(self):
        """
        解析并施加全部边界条件。

        先施加 Neumann 条件，再按追加顺序施加 Dirichlet 条件，
        因此 Dirichlet 节点的给定值不会被载荷改变；
        同一节点上的多个 Dirichlet 条件以最后一个为准。
        """
        if self.state is not SolverState.ASSEMBLED:
            raise SolverStateError(
                f"apply_boundary_conditions() requires state 'assembled', current state is '{self.state.value}'"
            )

        # 1. 先全部解析，解析失败时方程组保持未修改
        for bc in self.boundary_conditions:
            bc.resolve(self.mesh)
        self.mesh.boundary_conditions = list(self.boundary_conditions)

        # 2. 施加
        neumann = [bc for bc in self.boundary_conditions if bc.kind is BoundaryKind.NEUMANN]
        dirichlet = [bc for bc in self.boundary_conditions if bc.kind is BoundaryKind.DIRICHLET]
        for bc in neumann + dirichlet:
            bc.apply(self.K_global, self.F_global)

        if not dirichlet:
            logger.warning("No Dirichlet condition applied: the system is singular up to a constant")
        logger.info(
            "Boundary conditions applied: %d Dirichlet, %d Neumann", len(dirichlet), len(neumann)
        )
        self.state = SolverState.BOUNDARY_APPLIED

    def solve(self):
        """
        求解线性方程组。

        Returns:
            SolveResult: 迭代未收敛时 converged=False，解为最后一轮近似值
        """
        if self.state is not SolverState.BOUNDARY_APPLIED:
            raise SolverStateError(
                f"solve() requires state 'boundary_applied', current state is '{self.state.value}'"
            )
        linear_solver = LinearSolver(self.K_global, self.F_global)
        self.result = linear_solver.solve(
            method=self.solver_config["method"],
            tol=self.solver_config["tol"],
            max_iter=int(self.solver_config["max_iter"]),
        )
        self.state = SolverState.SOLVED
        return self.result

    def run(self):
        """依次执行 assemble / apply_boundary_conditions / solve。"""
        self.assemble()
        self.apply_boundary_conditions()
        return self.solve()

    # ------------------------------------------------------------------
    # 结果
    # ------------------------------------------------------------------
    def _require_solved(self, what):
        if self.state is not SolverState.SOLVED:
            raise SolverStateError(f"{what} requires state 'solved', current state is '{self.state.value}'")

    @property
    def converged(self):
        return self.result is not None and self.result.converged

    def get_solution(self):
        """节点电位向量 (副本)。"""
        self._require_solved("get_solution()")
        return self.result.x.copy()

    def compute_current_density(self):
        """
        各单元中心处的电流密度 J = -σ∇φ。

        只对参与组装的区域单元计算，边界单元对应行为 NaN。

        Returns:
            np.ndarray: (n_elements, 3)，行顺序与 mesh.elements 一致
        """
        self._require_solved("compute_current_density()")
        assembler = GlobalAssembler(
            self.mesh, self.materials, default_conductivity=self.solver_config["default_conductivity"]
        )
        phi = self.result.x
        dim = self.mesh.domain_dimension
        J = np.full((self.mesh.n_elements, 3), np.nan)
        for i, element in enumerate(self.mesh.elements):
            if element.dim == dim:
                J[i] = element.current_density(phi, assembler.resolve_conductivity(element))
        return J

    def export(self, path, include_current_density=True):
        """将结果写出为 .vtk / .vtu 文件，返回写出的 PyVista 网格。"""
        self._require_solved("export()")
        from ..utils.visualizer import FEMVisualizer

        current = self.compute_current_density() if include_current_density else None
        return FEMVisualizer.export(Path(path), self.mesh, self.result.x, current_density=current)
