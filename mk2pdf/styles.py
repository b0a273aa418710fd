"""
Stylesheet composition: turns a root CSS file and everything it pulls in
into one flat stylesheet the browser can apply without further fetching.

The stages always run in the same order:

1. ``@import`` rules are inlined, including remote ``http(s)`` imports.
2. ``@define-mixin`` / ``@mixin`` blocks are expanded.
3. Nested rules are flattened into top-level selectors.
4. Newer syntax is rewritten for broader support (vendor prefixes,
   ``inset`` and logical shorthands, ``:any-link``).

Source order survives every stage, so the cascade of the composed output
matches the cascade of the source.

MIT License - Copyright (c) 2025 Markdown to PDF Converter
"""

import copy
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urljoin

import requests
import tinycss2

from .errors import StyleResolutionError
from .log import ConsoleLogger

# At-rules whose body holds style rules and which bubble out of a nested rule
CONDITIONAL_AT_RULES = {"media", "supports", "container", "layer", "document", "scope"}

# property -> prefixed variants emitted before the standard declaration
PROPERTY_PREFIXES = {
    "appearance": ["-webkit-appearance", "-moz-appearance"],
    "backdrop-filter": ["-webkit-backdrop-filter"],
    "box-decoration-break": ["-webkit-box-decoration-break"],
    "hyphens": ["-webkit-hyphens"],
    "mask": ["-webkit-mask"],
    "mask-image": ["-webkit-mask-image"],
    "print-color-adjust": ["-webkit-print-color-adjust"],
    "tab-size": ["-moz-tab-size"],
    "text-size-adjust": ["-webkit-text-size-adjust", "-moz-text-size-adjust"],
    "user-select": ["-webkit-user-select", "-moz-user-select"],
}

# (property, value) -> prefixed (property, value) emitted before the declaration
VALUE_PREFIXES = {
    ("position", "sticky"): [("position", "-webkit-sticky")],
    ("background-clip", "text"): [("-webkit-background-clip", "text")],
}

# logical shorthand -> physical longhands, assuming horizontal left-to-right text
LOGICAL_SHORTHANDS = {
    "margin-inline": ("margin-left", "margin-right"),
    "margin-block": ("margin-top", "margin-bottom"),
    "padding-inline": ("padding-left", "padding-right"),
    "padding-block": ("padding-top", "padding-bottom"),
    "inset-inline": ("left", "right"),
    "inset-block": ("top", "bottom"),
}

LOGICAL_LONGHANDS = {
    "margin-inline-start": "margin-left",
    "margin-inline-end": "margin-right",
    "margin-block-start": "margin-top",
    "margin-block-end": "margin-bottom",
    "padding-inline-start": "padding-left",
    "padding-inline-end": "padding-right",
    "padding-block-start": "padding-top",
    "padding-block-end": "padding-bottom",
    "inset-inline-start": "left",
    "inset-inline-end": "right",
    "inset-block-start": "top",
    "inset-block-end": "bottom",
}

MAX_MIXIN_DEPTH = 32

_VARIABLE_RE = re.compile(r"\$\(([\w-]+)\)|\$([A-Za-z_][\w-]*)")


@dataclass
class Declaration:
    name: str
    value: str
    important: bool = False


@dataclass
class StyleRule:
    selectors: List[str]
    children: List["Node"] = field(default_factory=list)


@dataclass
class AtRule:
    name: str
    prelude: str = ""
    children: Optional[List["Node"]] = None
    tokens: list = field(default_factory=list, repr=False, compare=False)


Node = Union[Declaration, StyleRule, AtRule]
Location = Union[Path, str]


def _serialize_tokens(tokens) -> str:
    """Serialize component values with whitespace runs collapsed to one space."""
    parts = []
    for token in tokens:
        if token.type == "whitespace":
            if parts and parts[-1] != " ":
                parts.append(" ")
        else:
            parts.append(token.serialize())
    return "".join(parts).strip()


def _split_on_commas(tokens) -> List[list]:
    """Split a component value list on its top-level commas."""
    groups = [[]]
    for token in tokens:
        if token == ",":
            groups.append([])
        else:
            groups[-1].append(token)
    return groups


def _split_on_whitespace(value: str) -> List[str]:
    parts = []
    current = []
    for token in tinycss2.parse_component_value_list(value, skip_comments=True):
        if token.type == "whitespace":
            if current:
                parts.append(current)
                current = []
        else:
            current.append(token)
    if current:
        parts.append(current)
    return [_serialize_tokens(part) for part in parts]


def _iter_errors(nodes):
    """Yield every ParseError found anywhere in a tinycss2 tree."""
    for node in nodes or ():
        if node.type == "error":
            yield node
            continue
        for attr in ("prelude", "content", "value", "arguments"):
            children = getattr(node, attr, None)
            if isinstance(children, list):
                yield from _iter_errors(children)


def _ends_cleanly(css: str) -> bool:
    """Return True when no block, string or comment is left open at end of input."""
    # An extra closing brace stays unmatched at the top level only if everything before it was closed
    tokens = tinycss2.parse_component_value_list(css + "}")
    return bool(tokens) and tokens[-1].type == "error" and tokens[-1].kind == "}"


def _replace_outside_parens(text: str, old: str, new: str) -> str:
    """Replace ``old`` with ``new`` only where it is not inside parentheses."""
    result = []
    depth = 0
    i = 0
    while i < len(text):
        if depth == 0 and text.startswith(old, i):
            result.append(new)
            i += len(old)
            continue
        char = text[i]
        if char == "(":
            depth += 1
        elif char == ")" and depth:
            depth -= 1
        result.append(char)
        i += 1
    return "".join(result)


def _is_remote(location: Location) -> bool:
    return isinstance(location, str) and location.startswith(("http://", "https://"))


class StyleComposer:
    """Resolves a root stylesheet into one flat CSS string."""

    def __init__(self, logger: Optional[ConsoleLogger] = None,
                 session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.logger = logger or ConsoleLogger()
        self.session = session or requests.Session()
        self.timeout = timeout

    def compose(self, styles_path: Optional[Path]) -> Optional[str]:
        """Compose the stylesheet chain rooted at ``styles_path``.

        Returns ``None`` when no stylesheet is given. Raises
        :class:`StyleResolutionError` on any unreadable source, broken
        import, undefined mixin or malformed syntax.
        """
        if styles_path is None:
            self.logger.log_debug("No stylesheet given, document will be unstyled")
            return None

        root = Path(styles_path).resolve()
        self.logger.log_debug(f"Composing stylesheet from {root}")

        nodes = self._resolve_imports(self._parse(self._read(root), root), root, [root], set())
        nodes = self._expand_mixins(nodes, {}, 0)
        nodes = self._flatten(nodes)
        nodes = self._polyfill(nodes)
        return self._serialize(nodes)

    # --- reading and parsing ---

    def _read(self, location: Location) -> str:
        if _is_remote(location):
            self.logger.log_debug(f"Fetching remote stylesheet {location}")
            try:
                response = self.session.get(location, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise StyleResolutionError(f"Failed to fetch stylesheet {location}: {e}") from e
            return response.text

        try:
            return Path(location).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StyleResolutionError(f"Cannot read stylesheet {location}: {e}") from e

    def _parse(self, css: str, origin: Location) -> List[Node]:
        if not _ends_cleanly(css):
            raise StyleResolutionError(f"Malformed CSS in {origin}: unclosed block or string at end of file")
        rules = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
        return self._convert(rules, origin)

    def _parse_block(self, content, origin: Location) -> List[Node]:
        items = tinycss2.parse_blocks_contents(content, skip_comments=True, skip_whitespace=True)
        return self._convert(items, origin)

    def _convert(self, items, origin: Location) -> List[Node]:
        """Convert tinycss2 nodes into the composer's own rule tree."""
        for error in _iter_errors(items):
            raise StyleResolutionError(
                f"Malformed CSS in {origin} at line {error.source_line}, "
                f"column {error.source_column}: {error.message}")

        nodes: List[Node] = []
        for item in items:
            if item.type == "qualified-rule":
                selectors = [_serialize_tokens(group) for group in _split_on_commas(item.prelude)]
                nodes.append(StyleRule(selectors, self._parse_block(item.content, origin)))
            elif item.type == "at-rule":
                if item.lower_at_keyword == "charset":
                    continue
                children = None
                if item.content is not None:
                    children = self._parse_block(item.content, origin)
                nodes.append(AtRule(item.lower_at_keyword, _serialize_tokens(item.prelude), children, item.prelude))
            elif item.type == "declaration":
                name = item.name if item.name.startswith("--") else item.lower_name
                nodes.append(Declaration(name, _serialize_tokens(item.value), item.important))
        return nodes

    # --- 1. imports ---

    def _import_target(self, rule: AtRule, base: Location) -> Tuple[Location, str]:
        """Return the resolved import location and its trailing media query."""
        significant = [i for i, t in enumerate(rule.tokens) if t.type != "whitespace"]
        if not significant:
            raise StyleResolutionError(f"Empty @import in {base}")

        head = rule.tokens[significant[0]]
        if head.type in ("string", "url"):
            ref = head.value
        elif head.type == "function" and head.lower_name == "url":
            args = [t for t in head.arguments if t.type == "string"]
            if not args:
                raise StyleResolutionError(f"Invalid @import url() in {base}")
            ref = args[0].value
        else:
            raise StyleResolutionError(f"Invalid @import '{rule.prelude}' in {base}")

        media = _serialize_tokens(rule.tokens[significant[0] + 1:])

        if ref.startswith("//"):
            ref = "https:" + ref
        if ref.startswith(("http://", "https://")):
            return ref, media
        if _is_remote(base):
            return urljoin(base, ref), media
        return (Path(base).parent / ref).resolve(), media

    def _resolve_imports(self, nodes: List[Node], base: Location,
                         stack: List[Location], seen: Set[Tuple[str, str]]) -> List[Node]:
        resolved: List[Node] = []
        for node in nodes:
            if not (isinstance(node, AtRule) and node.name == "import"):
                resolved.append(node)
                continue

            target, media = self._import_target(node, base)
            if target in stack:
                chain = " -> ".join(str(location) for location in stack + [target])
                raise StyleResolutionError(f"Cyclic @import: {chain}")

            key = (str(target), media)
            if key in seen:
                self.logger.log_debug(f"Skipping duplicate import of {target}")
                continue
            seen.add(key)

            self.logger.log_debug(f"Inlining @import {target}")
            imported = self._parse(self._read(target), target)
            imported = self._resolve_imports(imported, target, stack + [target], seen)
            if media:
                resolved.append(AtRule("media", media, imported))
            else:
                resolved.extend(imported)
        return resolved

    # --- 2. mixins ---

    def _expand_mixins(self, nodes: List[Node], mixins: Dict[str, Tuple[List[Tuple[str, Optional[str]]], List[Node]]],
                       depth: int, content: Optional[List[Node]] = None) -> List[Node]:
        if depth > MAX_MIXIN_DEPTH:
            raise StyleResolutionError("Mixin expansion is too deep, check for recursive mixins")

        expanded: List[Node] = []
        for node in nodes:
            if isinstance(node, AtRule) and node.name == "define-mixin":
                name, params = self._parse_mixin_definition(node.prelude)
                mixins[name] = (params, node.children or [])
            elif isinstance(node, AtRule) and node.name == "mixin":
                expanded.extend(self._apply_mixin(node, mixins, depth))
            elif isinstance(node, AtRule) and node.name == "mixin-content":
                expanded.extend(copy.deepcopy(content or []))
            elif isinstance(node, StyleRule):
                expanded.append(StyleRule(node.selectors, self._expand_mixins(node.children, mixins, depth, content)))
            elif isinstance(node, AtRule) and node.children is not None:
                expanded.append(AtRule(node.name, node.prelude, self._expand_mixins(node.children, mixins, depth, content)))
            else:
                expanded.append(node)
        return expanded

    def _parse_mixin_definition(self, prelude: str) -> Tuple[str, List[Tuple[str, Optional[str]]]]:
        name, _, rest = prelude.partition(" ")
        if not name:
            raise StyleResolutionError("@define-mixin without a name")
        params = []
        for raw in filter(None, (part.strip() for part in rest.split(","))):
            param, _, default = raw.partition(":")
            param = param.strip()
            if not param.startswith("$"):
                raise StyleResolutionError(f"Mixin '{name}' parameter '{param}' must start with '$'")
            params.append((param[1:], default.strip() if default else None))
        return name, params

    def _apply_mixin(self, call: AtRule, mixins, depth: int) -> List[Node]:
        name, _, rest = call.prelude.partition(" ")
        if name not in mixins:
            raise StyleResolutionError(f"Undefined mixin '{name}'")
        params, body = mixins[name]

        args = []
        if rest.strip():
            tokens = tinycss2.parse_component_value_list(rest, skip_comments=True)
            args = [_serialize_tokens(group) for group in _split_on_commas(tokens)]
        if len(args) > len(params):
            raise StyleResolutionError(f"Mixin '{name}' takes {len(params)} arguments, got {len(args)}")

        values = {}
        for index, (param, default) in enumerate(params):
            if index < len(args) and args[index]:
                values[param] = args[index]
            elif default is not None:
                values[param] = default
            else:
                raise StyleResolutionError(f"Missing argument '${param}' for mixin '{name}'")

        content = self._expand_mixins(call.children or [], mixins, depth + 1)
        return self._expand_mixins(self._substitute(body, values), mixins, depth + 1, content)

    def _substitute(self, nodes: List[Node], values: Dict[str, str]) -> List[Node]:
        def replace(text: str) -> str:
            return _VARIABLE_RE.sub(lambda m: values.get(m.group(1) or m.group(2), m.group(0)), text)

        result: List[Node] = []
        for node in nodes:
            if isinstance(node, Declaration):
                result.append(Declaration(replace(node.name), replace(node.value), node.important))
            elif isinstance(node, StyleRule):
                result.append(StyleRule([replace(s) for s in node.selectors], self._substitute(node.children, values)))
            else:
                children = self._substitute(node.children, values) if node.children is not None else None
                result.append(AtRule(node.name, replace(node.prelude), children))
        return result

    # --- 3. nesting ---

    def _flatten(self, nodes: List[Node]) -> List[Node]:
        flat: List[Node] = []
        for node in nodes:
            if isinstance(node, StyleRule):
                flat.extend(self._flatten_rule(node.selectors, node.children))
            elif isinstance(node, AtRule) and node.name in CONDITIONAL_AT_RULES and node.children is not None:
                flat.append(AtRule(node.name, node.prelude, self._flatten(node.children)))
            else:
                flat.append(node)
        return flat

    def _flatten_rule(self, selectors: List[str], children: List[Node]) -> List[Node]:
        """Flatten one rule; declarations after a nested rule open a new copy of the parent."""
        output: List[Node] = []
        pending: List[Node] = []

        def flush():
            if pending:
                output.append(StyleRule(list(selectors), list(pending)))
                pending.clear()

        for child in children:
            if isinstance(child, StyleRule):
                flush()
                output.extend(self._flatten_rule(self._join_selectors(selectors, child.selectors), child.children))
            elif isinstance(child, AtRule) and child.name == "nest" and child.children is not None:
                flush()
                nested = [s.strip() for s in child.prelude.split(",")]
                output.extend(self._flatten_rule(self._join_selectors(selectors, nested), child.children))
            elif isinstance(child, AtRule) and child.name in CONDITIONAL_AT_RULES and child.children is not None:
                flush()
                output.append(AtRule(child.name, child.prelude, self._flatten_rule(selectors, child.children)))
            elif isinstance(child, AtRule) and child.children is not None:
                # @font-face, @keyframes, @page and the like move to the top level as they are
                flush()
                output.append(child)
            else:
                pending.append(child)
        flush()
        return output

    @staticmethod
    def _join_selectors(parents: List[str], children: List[str]) -> List[str]:
        joined = []
        for parent in parents:
            for child in children:
                if "&" in child:
                    joined.append(child.replace("&", parent))
                else:
                    joined.append(f"{parent} {child}")
        return joined

    # --- 4. future syntax ---

    def _polyfill(self, nodes: List[Node]) -> List[Node]:
        result: List[Node] = []
        for node in nodes:
            if isinstance(node, StyleRule):
                result.append(StyleRule(self._polyfill_selectors(node.selectors),
                                        self._polyfill_declarations(node.children)))
            elif isinstance(node, AtRule) and node.children is not None:
                children = self._polyfill(self._polyfill_declarations(node.children))
                result.append(AtRule(node.name, node.prelude, children))
            else:
                result.append(node)
        return result

    @staticmethod
    def _polyfill_selectors(selectors: List[str]) -> List[str]:
        result = []
        for selector in selectors:
            link = _replace_outside_parens(selector, ":any-link", ":link")
            if link != selector:
                result.append(link)
                result.append(_replace_outside_parens(selector, ":any-link", ":visited"))
            else:
                # Inside :not() and friends a split would change the meaning
                result.append(selector)
        return result

    def _polyfill_declarations(self, children: List[Node]) -> List[Node]:
        existing = {child.name for child in children if isinstance(child, Declaration)}
        result: List[Node] = []
        for child in children:
            if not isinstance(child, Declaration):
                result.append(child)
                continue

            name, value, important = child.name, child.value, child.important
            if name == "inset" or name in LOGICAL_SHORTHANDS:
                result.extend(self._expand_box(name, value, important))
                continue
            if name in LOGICAL_LONGHANDS:
                result.append(Declaration(LOGICAL_LONGHANDS[name], value, important))
                continue

            for prefixed in PROPERTY_PREFIXES.get(name, []):
                if prefixed not in existing:
                    result.append(Declaration(prefixed, value, important))
            for prefixed_name, prefixed_value in VALUE_PREFIXES.get((name, value.lower()), []):
                result.append(Declaration(prefixed_name, prefixed_value, important))
            result.append(child)
        return result

    @staticmethod
    def _expand_box(name: str, value: str, important: bool) -> List[Declaration]:
        parts = _split_on_whitespace(value)
        if name == "inset":
            # CSS box shorthand: 1 to 4 values, top right bottom left
            if not 1 <= len(parts) <= 4:
                return [Declaration(name, value, important)]
            top = parts[0]
            right = parts[1] if len(parts) > 1 else top
            bottom = parts[2] if len(parts) > 2 else top
            left = parts[3] if len(parts) > 3 else right
            return [Declaration(side, side_value, important) for side, side_value in
                    (("top", top), ("right", right), ("bottom", bottom), ("left", left))]

        if not 1 <= len(parts) <= 2:
            return [Declaration(name, value, important)]
        start_name, end_name = LOGICAL_SHORTHANDS[name]
        start = parts[0]
        end = parts[1] if len(parts) > 1 else start
        return [Declaration(start_name, start, important), Declaration(end_name, end, important)]

    # --- serialization ---

    def _serialize(self, nodes: List[Node], indent: str = "") -> str:
        blocks = []
        for node in nodes:
            if isinstance(node, Declaration):
                important = " !important" if node.important else ""
                blocks.append(f"{indent}{node.name}: {node.value}{important};\n")
            elif isinstance(node, StyleRule):
                body = self._serialize(node.children, indent + "  ")
                blocks.append(f"{indent}{', '.join(node.selectors)} {{\n{body}{indent}}}\n")
            elif node.children is None:
                prelude = f" {node.prelude}" if node.prelude else ""
                blocks.append(f"{indent}@{node.name}{prelude};\n")
            else:
                prelude = f" {node.prelude}" if node.prelude else ""
                body = self._serialize(node.children, indent + "  ")
                blocks.append(f"{indent}@{node.name}{prelude} {{\n{body}{indent}}}\n")
        return "".join(blocks)
