import logging
import re

from ..core.exceptions import FormatError

logger = logging.getLogger(__name__)

# name value  或  name = value
_PAIR = re.compile(r'^(?P<name>[^\s=#]+)\s*(?:=\s*|\s+)(?P<value>\S+)$')


def parse_material_lines(lines):
    """
    解析材料属性文本行，返回 {物理组名称: 电导率}。

    每行一条 `name value` 或 `name=value`；空行与 # 注释忽略，
    行尾的 # 注释被去除。同名条目以最后一次出现为准。

    Raises:
        FormatError: 行格式错误或数值无法解析 (附带行号)
    """
    materials = {}
    for lineno, raw in enumerate(lines, start=1):
        line = raw.split('#', 1)[0].strip()
        if not line:
            continue

        match = _PAIR.match(line)
        if match is None:
            raise FormatError(f"Expected 'name value' or 'name=value', got '{raw.strip()}'", lineno)

        name, value = match.group('name'), match.group('value')
        try:
            conductivity = float(value)
        except ValueError:
            raise FormatError(f"Invalid value '{value}' for '{name}'", lineno) from None

        if name in materials:
            logger.debug("line %d: '%s' redefined", lineno, name)
        materials[name] = conductivity
    return materials


def read_material_file(filename):
    """从文件读取材料属性映射。"""
    logger.info("Reading material properties: %s", filename)
    with open(filename, 'r', encoding='utf-8') as f:
        materials = parse_material_lines(f.readlines())
    logger.info("Material properties read for %d groups", len(materials))
    return materials
