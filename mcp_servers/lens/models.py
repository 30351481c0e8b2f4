"""
Typed data model exchanged over the bridge.

`from_dict` is the schema boundary for page-script output: anything the inspection
script returns is checked here before the rest of the process sees it. `to_dict`
produces the camelCase wire shape and omits enrichments that were not detected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import LensError

CONSOLE_LEVELS = ("error", "warn", "log", "info", "debug")

COMPUTED_STYLE_KEYS = (
    "display",
    "position",
    "width",
    "height",
    "margin",
    "padding",
    "color",
    "backgroundColor",
    "fontSize",
    "fontFamily",
)


class SchemaError(LensError):
    """Page-script output did not match the expected shape."""


def _req(data: dict[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if key not in data:
        raise SchemaError(f"{where}: missing field {key!r}")
    value = data[key]
    if isinstance(value, bool) and kind in (int, float, (int, float)):
        raise SchemaError(f"{where}: field {key!r} must be a number")
    if not isinstance(value, kind):
        raise SchemaError(f"{where}: field {key!r} has type {type(value).__name__}")
    return value


def _opt(data: dict[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if data.get(key) is None:
        return None
    return _req(data, key, kind, where)


def _obj(data: Any, where: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaError(f"{where}: expected object, got {type(data).__name__}")
    return data


def _str_map(value: Any, where: str) -> dict[str, str]:
    return {str(k): "" if v is None else str(v) for k, v in _obj(value, where).items()}


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_dict(cls, data: Any) -> BoundingBox:
        d = _obj(data, "boundingBox")
        return cls(
            x=round(_req(d, "x", (int, float), "boundingBox")),
            y=round(_req(d, "y", (int, float), "boundingBox")),
            width=round(_req(d, "width", (int, float), "boundingBox")),
            height=round(_req(d, "height", (int, float), "boundingBox")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass(frozen=True, slots=True)
class ParentChainItem:
    tag_name: str
    selector: str
    description: str

    @classmethod
    def from_dict(cls, data: Any) -> ParentChainItem:
        d = _obj(data, "parentChain[]")
        return cls(
            tag_name=_req(d, "tagName", str, "parentChain[]"),
            selector=_req(d, "selector", str, "parentChain[]"),
            description=_req(d, "description", str, "parentChain[]"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"tagName": self.tag_name, "selector": self.selector, "description": self.description}


@dataclass(frozen=True, slots=True)
class ComponentInfo:
    name: str
    file: str | None = None
    line: int | None = None
    props: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ComponentInfo:
        d = _obj(data, "framework.components[]")
        props = d.get("props")
        return cls(
            name=_req(d, "name", str, "framework.components[]"),
            file=_opt(d, "file", str, "framework.components[]"),
            line=_opt(d, "line", int, "framework.components[]"),
            props=_obj(props, "framework.components[].props") if props is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({"name": self.name, "file": self.file, "line": self.line, "props": self.props})


@dataclass(frozen=True, slots=True)
class FrameworkInfo:
    name: str
    components: tuple[ComponentInfo, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> FrameworkInfo:
        d = _obj(data, "framework")
        raw_components = d.get("components") or []
        if not isinstance(raw_components, list):
            raise SchemaError("framework: components must be a list")
        return cls(
            name=_req(d, "name", str, "framework"),
            components=tuple(ComponentInfo.from_dict(c) for c in raw_components),
        )

    @property
    def component_name(self) -> str | None:
        return self.components[0].name if self.components else None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.components:
            out["components"] = [c.to_dict() for c in self.components]
        return out


@dataclass(frozen=True, slots=True)
class FormState:
    type: str
    value: str
    required: bool
    disabled: bool
    read_only: bool
    validation_state: str
    placeholder: str | None = None
    validation_message: str | None = None
    checked: bool | None = None
    selected_index: int | None = None
    options: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> FormState:
        d = _obj(data, "formState")
        options = d.get("options")
        if options is not None and not isinstance(options, list):
            raise SchemaError("formState: options must be a list")
        return cls(
            type=_req(d, "type", str, "formState"),
            value=_req(d, "value", str, "formState"),
            required=_req(d, "required", bool, "formState"),
            disabled=_req(d, "disabled", bool, "formState"),
            read_only=_req(d, "readOnly", bool, "formState"),
            validation_state=_req(d, "validationState", str, "formState"),
            placeholder=_opt(d, "placeholder", str, "formState"),
            validation_message=_opt(d, "validationMessage", str, "formState"),
            checked=_opt(d, "checked", bool, "formState"),
            selected_index=_opt(d, "selectedIndex", int, "formState"),
            options=tuple(str(o) for o in options) if options is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "type": self.type,
                "value": self.value,
                "placeholder": self.placeholder,
                "required": self.required,
                "disabled": self.disabled,
                "readOnly": self.read_only,
                "validationState": self.validation_state,
                "validationMessage": self.validation_message,
                "checked": self.checked,
                "selectedIndex": self.selected_index,
                "options": list(self.options) if self.options is not None else None,
            }
        )


@dataclass(frozen=True, slots=True)
class OverlayInfo:
    type: str
    is_backdrop: bool
    can_dismiss: bool
    container: str | None = None
    triggered_by: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> OverlayInfo:
        d = _obj(data, "overlay")
        return cls(
            type=_req(d, "type", str, "overlay"),
            is_backdrop=_req(d, "isBackdrop", bool, "overlay"),
            can_dismiss=_req(d, "canDismiss", bool, "overlay"),
            container=_opt(d, "container", str, "overlay"),
            triggered_by=_opt(d, "triggeredBy", str, "overlay"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "type": self.type,
                "isBackdrop": self.is_backdrop,
                "canDismiss": self.can_dismiss,
                "container": self.container,
                "triggeredBy": self.triggered_by,
            }
        )


@dataclass(frozen=True, slots=True)
class StackedElement:
    selector: str
    description: str
    z_index: str

    @classmethod
    def from_dict(cls, data: Any) -> StackedElement:
        d = _obj(data, "stacking.stack[]")
        return cls(
            selector=_req(d, "selector", str, "stacking.stack[]"),
            description=_req(d, "description", str, "stacking.stack[]"),
            z_index=_req(d, "zIndex", str, "stacking.stack[]"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"selector": self.selector, "description": self.description, "zIndex": self.z_index}


@dataclass(frozen=True, slots=True)
class StackingInfo:
    z_index: str
    creates_context: bool
    stack: tuple[StackedElement, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> StackingInfo:
        d = _obj(data, "stacking")
        stack = d.get("stack") or []
        if not isinstance(stack, list):
            raise SchemaError("stacking: stack must be a list")
        return cls(
            z_index=_req(d, "zIndex", str, "stacking"),
            creates_context=_req(d, "createsContext", bool, "stacking"),
            stack=tuple(StackedElement.from_dict(s) for s in stack),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "zIndex": self.z_index,
            "createsContext": self.creates_context,
            "stack": [s.to_dict() for s in self.stack],
        }


@dataclass(frozen=True, slots=True)
class IframeInfo:
    src: str
    name: str | None = None
    sandboxed: bool = False
    cross_origin: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> IframeInfo:
        d = _obj(data, "iframe")
        return cls(
            src=_req(d, "src", str, "iframe"),
            name=_opt(d, "name", str, "iframe"),
            sandboxed=bool(_opt(d, "sandboxed", bool, "iframe")),
            cross_origin=bool(_opt(d, "crossOrigin", bool, "iframe")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {"src": self.src, "name": self.name, "sandboxed": self.sandboxed, "crossOrigin": self.cross_origin}
        )


@dataclass(frozen=True, slots=True)
class ShadowDomInfo:
    in_shadow_dom: bool
    has_shadow_root: bool
    host: str | None = None
    host_description: str | None = None
    mode: str | None = None
    shadow_child_count: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ShadowDomInfo:
        d = _obj(data, "shadowDOM")
        return cls(
            in_shadow_dom=_req(d, "inShadowDOM", bool, "shadowDOM"),
            has_shadow_root=_req(d, "hasShadowRoot", bool, "shadowDOM"),
            host=_opt(d, "host", str, "shadowDOM"),
            host_description=_opt(d, "hostDescription", str, "shadowDOM"),
            mode=_opt(d, "mode", str, "shadowDOM"),
            shadow_child_count=_opt(d, "shadowChildCount", int, "shadowDOM"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "inShadowDOM": self.in_shadow_dom,
                "hasShadowRoot": self.has_shadow_root,
                "host": self.host,
                "hostDescription": self.host_description,
                "mode": self.mode,
                "shadowChildCount": self.shadow_child_count,
            }
        )


@dataclass(frozen=True, slots=True)
class ScrollInfo:
    is_scrollable: bool
    scroll_top: int
    scroll_left: int
    scroll_height: int
    scroll_width: int
    in_viewport: bool
    visible_percentage: int

    @classmethod
    def from_dict(cls, data: Any) -> ScrollInfo:
        d = _obj(data, "scroll")
        num = (int, float)
        return cls(
            is_scrollable=_req(d, "isScrollable", bool, "scroll"),
            scroll_top=round(_req(d, "scrollTop", num, "scroll")),
            scroll_left=round(_req(d, "scrollLeft", num, "scroll")),
            scroll_height=round(_req(d, "scrollHeight", num, "scroll")),
            scroll_width=round(_req(d, "scrollWidth", num, "scroll")),
            in_viewport=_req(d, "inViewport", bool, "scroll"),
            visible_percentage=round(_req(d, "visiblePercentage", num, "scroll")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "isScrollable": self.is_scrollable,
            "scrollTop": self.scroll_top,
            "scrollLeft": self.scroll_left,
            "scrollHeight": self.scroll_height,
            "scrollWidth": self.scroll_width,
            "inViewport": self.in_viewport,
            "visiblePercentage": self.visible_percentage,
        }


@dataclass(frozen=True, slots=True)
class ElementInfo:
    selector: str
    tag_name: str
    classes: tuple[str, ...]
    attributes: dict[str, str]
    computed_styles: dict[str, str]
    bounding_box: BoundingBox
    parent_chain: tuple[ParentChainItem, ...]
    sibling_count: int
    child_count: int
    description: str
    id: str | None = None
    framework: FrameworkInfo | None = None
    form_state: FormState | None = None
    is_loading: bool | None = None
    overlay: OverlayInfo | None = None
    stacking: StackingInfo | None = None
    iframe: IframeInfo | None = None
    shadow_dom: ShadowDomInfo | None = None
    scroll: ScrollInfo | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ElementInfo:
        d = _obj(data, "element")
        classes = _req(d, "classes", list, "element")
        chain = _req(d, "parentChain", list, "element")
        styles = _str_map(_req(d, "computedStyles", dict, "element"), "computedStyles")
        # Only the allow-listed style subset crosses the boundary.
        styles = {k: styles[k] for k in COMPUTED_STYLE_KEYS if k in styles}
        element_id = _opt(d, "id", str, "element")
        is_loading = _opt(d, "isLoading", bool, "element")

        def enrich(key: str, parse: Any) -> Any:
            value = d.get(key)
            return parse(value) if value is not None else None

        return cls(
            selector=_req(d, "selector", str, "element"),
            tag_name=_req(d, "tagName", str, "element"),
            id=element_id or None,
            classes=tuple(str(c) for c in classes),
            attributes=_str_map(_req(d, "attributes", dict, "element"), "attributes"),
            computed_styles=styles,
            bounding_box=BoundingBox.from_dict(_req(d, "boundingBox", dict, "element")),
            parent_chain=tuple(ParentChainItem.from_dict(p) for p in chain[:6]),
            sibling_count=_req(d, "siblingCount", int, "element"),
            child_count=_req(d, "childCount", int, "element"),
            description=_req(d, "description", str, "element"),
            framework=enrich("framework", FrameworkInfo.from_dict),
            form_state=enrich("formState", FormState.from_dict),
            is_loading=True if is_loading else None,
            overlay=enrich("overlay", OverlayInfo.from_dict),
            stacking=enrich("stacking", StackingInfo.from_dict),
            iframe=enrich("iframe", IframeInfo.from_dict),
            shadow_dom=enrich("shadowDOM", ShadowDomInfo.from_dict),
            scroll=enrich("scroll", ScrollInfo.from_dict),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "selector": self.selector,
            "tagName": self.tag_name,
        }
        if self.id:
            out["id"] = self.id
        out.update(
            {
                "classes": list(self.classes),
                "attributes": dict(self.attributes),
                "computedStyles": dict(self.computed_styles),
                "boundingBox": self.bounding_box.to_dict(),
                "parentChain": [p.to_dict() for p in self.parent_chain],
                "siblingCount": self.sibling_count,
                "childCount": self.child_count,
                "description": self.description,
            }
        )
        enrichments = {
            "framework": self.framework,
            "formState": self.form_state,
            "overlay": self.overlay,
            "stacking": self.stacking,
            "iframe": self.iframe,
            "shadowDOM": self.shadow_dom,
            "scroll": self.scroll,
        }
        for key, value in enrichments.items():
            if value is not None:
                out[key] = value.to_dict()
        if self.is_loading:
            out["isLoading"] = True
        return out


@dataclass(frozen=True, slots=True)
class ConsoleMessage:
    level: str
    text: str
    timestamp: float
    source: str = ""
    line: int | None = None
    column: int | None = None
    stack_trace: str | None = None

    @staticmethod
    def normalize_level(raw: str | None) -> str:
        level = (raw or "").strip().lower()
        if level == "warning":
            return "warn"
        if level in CONSOLE_LEVELS:
            return level
        return "log"

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "level": self.level,
                "text": self.text,
                "source": self.source,
                "line": self.line,
                "column": self.column,
                "timestamp": self.timestamp,
                "stackTrace": self.stack_trace,
            }
        )


@dataclass(slots=True)
class BridgeState:
    """Snapshot of the browser side; rebuilt on every query."""

    connected: bool
    current_url: str
    last_inspected_element: ElementInfo | None = None
    console_logs: list[ConsoleMessage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "currentUrl": self.current_url,
            "lastInspectedElement": (
                self.last_inspected_element.to_dict() if self.last_inspected_element is not None else None
            ),
            "consoleLogs": [m.to_dict() for m in self.console_logs],
        }


@dataclass(frozen=True, slots=True)
class PageTarget:
    """A candidate page as reported by the transport."""

    id: str
    url: str
    title: str = ""
    type: str = "page"
    ws_url: str | None = None
    context_id: str | None = None


# Operation option objects (validated at the bridge boundary).


@dataclass(frozen=True, slots=True)
class ClickOptions:
    button: str = "left"
    click_count: int = 1
    delay_ms: int = 0
    timeout_ms: int | None = None


@dataclass(frozen=True, slots=True)
class TypeOptions:
    clear_first: bool = False
    delay_ms: int = 0
    timeout_ms: int | None = None


@dataclass(frozen=True, slots=True)
class WaitForOptions:
    timeout_ms: int | None = None
    visible: bool = True


@dataclass(frozen=True, slots=True)
class ScrollOptions:
    """No direction with a selector means "scroll the element into view"."""

    selector: str | None = None
    direction: str | None = "down"
    distance: int = 300
