import logging
import shlex

from ..core.element import ElementType
from ..core.exceptions import ParseError
from ..core.mesh import Mesh

logger = logging.getLogger(__name__)

# Gmsh 单元类型编号 -> (单元类型, 节点数, 拓扑维数)
GMSH_ELEMENT_TYPES = {
    1: (ElementType.LINE, 2, 1),
    2: (ElementType.TRIANGLE, 3, 2),
    4: (ElementType.TETRAHEDRON, 4, 3),
    5: (ElementType.HEXAHEDRON, 8, 3),
    6: (ElementType.PRISM, 6, 3),
}

# 0 维点单元：不参与组装，只把节点登记到点物理组
GMSH_POINT_TYPE = 15


class GmshParser:
    """
    Gmsh MSH 2.x ASCII 网格解析器。

    支持的区块：
        $MeshFormat, $PhysicalNames, $Nodes, $Elements
    其余区块 (如 $NodeData) 整块跳过。

    Gmsh 节点编号按出现顺序重排为 0-based 连续编号；
    单元以物理组名称归组，没有物理组名称的单元被跳过；
    具名的点单元 (类型 15) 登记为点物理组节点，供边界条件使用。
    """

    def __init__(self):
        self.physical_names = {}  # {(dim, tag): name}
        self.node_map = {}        # {gmsh 节点编号: 0-based 节点 ID}
        self.skipped_elements = 0
        self.mesh = None

    def read(self, filename):
        """
        从 .msh 文件读取网格。

        Returns:
            Mesh: 已填充节点、单元与物理组的网格

        Raises:
            ParseError: 文件结构错误 (附带行号)
            OSError: 文件无法读取
        """
        logger.info("Reading Gmsh mesh: %s", filename)
        with open(filename, 'r', encoding='utf-8', errors='replace') as f:
            all_lines = f.readlines()
        mesh = self.parse_lines(all_lines)
        logger.info(
            "Mesh parsed: %d nodes, %d elements, physical groups %s",
            mesh.n_nodes, mesh.n_elements, list(mesh.physical_groups),
        )
        return mesh

    def parse_lines(self, all_lines):
        """解析已读入的文本行。"""
        all_lines = [line.strip() for line in all_lines]
        self.physical_names = {}
        self.node_map = {}
        self.skipped_elements = 0
        self.mesh = Mesh()

        seen_format = False
        idx = 0
        total_lines = len(all_lines)

        while idx < total_lines:
            line = all_lines[idx]

            # 跳过空行
            if not line:
                idx += 1
                continue

            if not line.startswith('$'):
                raise ParseError(f"Unexpected content outside of a section: '{line}'", idx + 1)

            section = line[1:]
            blk, next_idx = self._read_section(all_lines, idx + 1, section)

            if section == 'MeshFormat':
                self._process_mesh_format(blk)
                seen_format = True
            elif not seen_format:
                raise ParseError("$MeshFormat must be the first section", idx + 1)
            elif section == 'PhysicalNames':
                self._process_physical_names(blk, idx + 1)
            elif section == 'Nodes':
                self._process_nodes(blk, idx + 1)
            elif section == 'Elements':
                self._process_elements(blk, idx + 1)
            else:
                logger.debug("Skipping section $%s (%d lines)", section, len(blk))

            idx = next_idx

        if not seen_format:
            raise ParseError("Missing $MeshFormat section")

        if self.skipped_elements:
            logger.debug("Skipped %d elements without a named physical group", self.skipped_elements)

        self.mesh.physical_names = {tag: name for (_, tag), name in self.physical_names.items()}
        return self.mesh

    # ------------------------------------------------------------------
    # 区块读取
    # ------------------------------------------------------------------
    def _read_section(self, lines, idx, section):
        """
        读取区块内容直到 $End<section>。

        Returns:
            blk: [(行号, 文本)]，行号从 1 开始
            next_idx: $End 行之后的下标
        """
        end_tag = f"$End{section}"
        blk = []
        start = idx
        while idx < len(lines):
            l = lines[idx]
            if l == end_tag:
                return blk, idx + 1
            if l.startswith('$'):
                raise ParseError(f"Section ${section} is not terminated before '{l}'", idx + 1)
            if l:
                blk.append((idx + 1, l))
            idx += 1
        raise ParseError(f"Section ${section} is not terminated (missing {end_tag})", start)

    def _count(self, blk, section, header_line):
        """区块第一行为条目数，校验与实际行数一致。"""
        if not blk:
            raise ParseError(f"${section} section is empty", header_line)
        lineno, text = blk[0]
        count = self._to_int(text, lineno, f"{section} count")
        entries = blk[1:]
        if count != len(entries):
            raise ParseError(
                f"${section} declares {count} entries but contains {len(entries)}", lineno
            )
        return entries

    # ------------------------------------------------------------------
    # 各区块处理
    # ------------------------------------------------------------------
    def _process_mesh_format(self, blk):
        if not blk:
            raise ParseError("$MeshFormat section is empty")
        lineno, text = blk[0]
        parts = self._split_line(text)
        if len(parts) < 3:
            raise ParseError(f"Malformed $MeshFormat line '{text}'", lineno)

        version, file_type = parts[0], parts[1]
        if not version.startswith('2.'):
            raise ParseError(f"Unsupported MSH format version {version} (expected 2.x)", lineno)
        if file_type != '0':
            raise ParseError("Binary MSH files are not supported", lineno)
        logger.debug("MSH format version %s", version)

    def _process_physical_names(self, blk, header_line):
        for lineno, text in self._count(blk, 'PhysicalNames', header_line):
            try:
                parts = shlex.split(text)
            except ValueError:
                raise ParseError(f"Malformed physical name '{text}'", lineno) from None
            if len(parts) != 3:
                raise ParseError(f"Expected 'dim tag \"name\"', got '{text}'", lineno)
            dim = self._to_int(parts[0], lineno, "physical dimension")
            tag = self._to_int(parts[1], lineno, "physical tag")
            self.physical_names[(dim, tag)] = parts[2]
        logger.debug("Physical names: %s", self.physical_names)

    def _process_nodes(self, blk, header_line):
        for lineno, text in self._count(blk, 'Nodes', header_line):
            parts = self._split_line(text)
            if len(parts) != 4:
                raise ParseError(f"Expected 'tag x y z', got '{text}'", lineno)
            tag = self._to_int(parts[0], lineno, "node tag")
            xyz = [self._to_float(p, lineno, "node coordinate") for p in parts[1:]]
            if tag in self.node_map:
                raise ParseError(f"Duplicate node tag {tag}", lineno)
            self.node_map[tag] = len(self.node_map)
            self.mesh.add_node(self.node_map[tag], *xyz)
        logger.debug("Read %d nodes", len(self.node_map))

    def _process_elements(self, blk, header_line):
        for lineno, text in self._count(blk, 'Elements', header_line):
            parts = [self._to_int(p, lineno, "element field") for p in self._split_line(text)]
            if len(parts) < 3:
                raise ParseError(f"Malformed element line '{text}'", lineno)

            eid, type_code, n_tags = parts[0], parts[1], parts[2]
            tags = parts[3:3 + n_tags]
            node_tags = parts[3 + n_tags:]
            if len(tags) != n_tags:
                raise ParseError(f"Element {eid} declares {n_tags} tags but has {len(tags)}", lineno)

            group = self._group_name(type_code, tags)
            if group is None:
                self.skipped_elements += 1
                logger.debug("line %d: element %d has no named physical group, skipped", lineno, eid)
                continue

            if type_code == GMSH_POINT_TYPE:
                if len(node_tags) != 1:
                    raise ParseError(f"Point element {eid} needs 1 node, got {len(node_tags)}", lineno)
                self.mesh.add_point(self._node_id(node_tags[0], eid, lineno), group)
                continue

            if type_code not in GMSH_ELEMENT_TYPES:
                raise ParseError(f"Unsupported element type code {type_code} (element {eid})", lineno)
            element_type, n_nodes, _ = GMSH_ELEMENT_TYPES[type_code]
            if len(node_tags) != n_nodes:
                raise ParseError(
                    f"Element {eid} of type {element_type.value} needs {n_nodes} nodes, got {len(node_tags)}",
                    lineno,
                )

            node_ids = [self._node_id(t, eid, lineno) for t in node_tags]
            self.mesh.add_element(element_type, node_ids, group, element_id=eid)

    def _node_id(self, tag, eid, lineno):
        try:
            return self.node_map[tag]
        except KeyError:
            raise ParseError(f"Element {eid} references unknown node {tag}", lineno) from None

    def _group_name(self, type_code, tags):
        """按单元的物理组编号 (第一个标签) 查找名称，没有名称时返回 None。"""
        if not tags or tags[0] == 0:
            return None
        tag = tags[0]
        if type_code == GMSH_POINT_TYPE:
            dim = 0
        elif type_code in GMSH_ELEMENT_TYPES:
            dim = GMSH_ELEMENT_TYPES[type_code][2]
        else:
            dim = None
        if dim is not None:
            if (dim, tag) in self.physical_names:
                return self.physical_names[(dim, tag)]
        # 编号在各维度之间不重复时，不依赖维度也能找到
        matches = [name for (_, t), name in self.physical_names.items() if t == tag]
        return matches[0] if len(matches) == 1 else None

    # ------------------------------------------------------------------
    # 辅助函数
    # ------------------------------------------------------------------
    def _split_line(self, line):
        """按空白拆分一行字符串。"""
        return line.split()

    def _to_int(self, text, lineno, what):
        try:
            return int(text)
        except ValueError:
            raise ParseError(f"Invalid {what} '{text}'", lineno) from None

    def _to_float(self, text, lineno, what):
        try:
            return float(text)
        except ValueError:
            raise ParseError(f"Invalid {what} '{text}'", lineno) from None
