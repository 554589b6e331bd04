"""Render an element tree into factory-call source text."""

from __future__ import annotations

from tagweave.config import CodegenConfig
from tagweave.errors import MarkupRenderError
from tagweave.parser import CodeNode, Element, TextNode

INDENT_STEP = 4


def to_pascal_case(name: str) -> str:
    """`data-value` -> `DataValue`; `onclick` -> `Onclick`; `""` -> `""`."""

    if not name:
        return name
    return "".join(part[:1].upper() + part[1:] for part in name.split("-"))


def escape_text(text: str) -> str:
    # Backslash first so later substitutions are not escaped twice.
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def is_component(tag_name: str) -> bool:
    return tag_name[:1].isupper()


def props_type_name(tag_name: str) -> str:
    if is_component(tag_name):
        return f"{tag_name}Props"
    return f"Html{to_pascal_case(tag_name)}Props"


def build_props_expression(element: Element) -> str:
    entries = [f"{to_pascal_case(k)} = {v}" for k, v in element.string_props.items()]
    entries.extend(f"{to_pascal_case(k)} = {v}" for k, v in element.code_props.items())

    type_name = props_type_name(element.tag_name)
    if not entries:
        return f"new {type_name} {{ }}"
    return f"new {type_name} {{ {', '.join(entries)} }}"


def _render_text(text: str, config: CodegenConfig) -> str:
    literal = f'"{escape_text(text)}"'
    if config.wrap_text:
        return f"{config.factory_name}.{config.create_text_name}({literal})"
    return literal


def build_child_arguments(element: Element, config: CodegenConfig, indent: int) -> list[str]:
    pad = " " * indent
    args: list[str] = []

    for child in element.children:
        if isinstance(child, Element):
            args.append(render(child, config, indent))
        elif isinstance(child, TextNode):
            args.append(pad + _render_text(child.text, config))
        elif isinstance(child, CodeNode):
            trimmed = child.code.strip()
            # Still-braced fragments are placeholders, not expressions.
            if trimmed.startswith("{") and trimmed.endswith("}"):
                continue
            args.append(pad + child.code)
        else:
            raise MarkupRenderError(
                f"unsupported child node {type(child).__name__} in <{element.tag_name}>"
            )

    return args


def render(element: Element, config: CodegenConfig, base_indent: int = 0) -> str:
    """Return the factory call for `element`, indented by `base_indent` spaces.

    Children are placed one per line at `base_indent + 4`, and the closing
    parenthesis returns to `base_indent`. Output depends only on the inputs.
    """

    if not element.tag_name:
        raise MarkupRenderError("element has an empty tag name")

    indent = " " * base_indent
    props = build_props_expression(element)
    children = build_child_arguments(element, config, base_indent + INDENT_STEP)

    tag = element.tag_name
    first_arg = f'"{tag}"' if tag == tag.lower() else tag

    out = f"{indent}{config.factory_name}.{config.create_element_name}({first_arg}, {props}"
    if children:
        out += ",\n" + ",\n".join(children) + "\n" + indent
    return out + ")"
