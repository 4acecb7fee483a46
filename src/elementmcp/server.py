"""Main MCP Server implementation for element picking and the element registry."""

import argparse
import logging
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from elementmcp.adapters import DomEvent
from elementmcp.container import get_container, reset_container
from elementmcp.domains.element_registry import (
    ElementNotFoundError,
    ElementRegistryService,
    FingerprintTieBreak,
    RegistryError,
)
from elementmcp.domains.picker import PickerOptions, PickerSession, PickerState
from elementmcp.domains.selector import js_lookup, resolve_selector
from elementmcp.domains.shared import ElementReference, KeyName, PointerEventType, TieBreakMode
from elementmcp.models.config_models import load_config
from elementmcp.utils.formatting import (
    format_element_info,
    format_element_summary,
    render_references,
)

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = """\
Element picker and named element registry for HTML pages.

Typical flow:
  load_page -> start_picker -> dispatch_pointer_event (mousemove, click)
  -> the picked element is saved as @element<N>
  -> rename_element / verify_element / process_references

capture_element saves an element by CSS selector without the picker.
Names may be referenced as @name in text passed to process_references.
"""

# Failures that become {"success": False} payloads instead of tool errors
_HANDLED_ERRORS = (RegistryError, RuntimeError, ValueError)


def _create_mcp_server() -> FastMCP:
    """Create and configure the FastMCP server with instructions."""
    return FastMCP("Element Picker MCP Server", instructions=SERVER_INSTRUCTIONS)


mcp = _create_mcp_server()


def _error_payload(error: Exception) -> Dict[str, Any]:
    return {"success": False, "error": str(error), "error_type": type(error).__name__}


def _describe(element: Any) -> Optional[Dict[str, Any]]:
    if element is None:
        return None
    return {
        "tag_name": element.tag_name,
        "id": element.get_attribute("id"),
        "class_name": element.get_attribute("class"),
    }


def _log_registry_events(service: ElementRegistryService) -> None:
    for event in service.pull_events():
        logger.debug(f"Registry event: {event}")


async def _registry() -> ElementRegistryService:
    return await get_container().get_registry_service()


def _find_on_page(selector: str) -> Any:
    document = get_container().require_document()
    element = resolve_selector(document, selector)
    if element is None:
        raise ValueError(f"No element matches selector '{selector}'")
    return element


async def _picker_result(picker: PickerSession, event: DomEvent) -> Dict[str, Any]:
    """Collect the picker's reaction to one dispatched event."""
    container = get_container()
    result: Dict[str, Any] = {
        "success": True,
        "state": picker.state.value,
        "default_prevented": event.default_prevented,
        "highlighted": _describe(picker.current_element) if picker.is_active else None,
        "events": [str(e) for e in picker.pull_events()],
        "messages": container.drain_outbox(),
    }

    snapshot = picker.take_pick()
    if snapshot is not None:
        result["picked"] = {"tag_name": snapshot.tag_name, "selector": snapshot.selector}
        if container.config.auto_register:
            service = await _registry()
            added = await service.add_element(snapshot)
            _log_registry_events(service)
            result["registered"] = {
                "name": added["name"],
                "summary": format_element_summary(added["data"], added["name"]),
            }
    return result


# ============================================================
# Page
# ============================================================


@mcp.tool
async def load_page(
    html: str,
    url: str = "about:blank",
    viewport_width: int | None = None,
    viewport_height: int | None = None,
    layout: Dict[str, List[float]] | None = None,
) -> Dict[str, Any]:
    """Load an HTML page to pick and track elements on.

    Replaces any previous page and stops an active picker. Tracked
    registry elements are re-attached to the new page.

    Args:
        html: Page markup.
        url: Page URL; its origin is reported in element frame info.
        viewport_width: Viewport width in CSS px (default from config).
        viewport_height: Viewport height in CSS px (default from config).
        layout: CSS selector -> [x, y, width, height] document geometry for
            elements without inline px geometry. Needed for hit testing.
    """
    container = get_container()
    viewport = None
    if viewport_width is not None or viewport_height is not None:
        viewport = (
            float(viewport_width or container.config.viewport_width),
            float(viewport_height or container.config.viewport_height),
        )
    try:
        await container.get_registry_service()
        loaded = await container.load_page(html, url=url, viewport=viewport, layout=layout)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)

    document = container.require_document()
    return {
        "success": True,
        "url": url,
        "element_count": sum(1 for _ in document.all_elements()),
        **loaded,
    }


@mcp.tool
async def mutate_page_element(
    selector: str,
    attributes: Dict[str, str | None] | None = None,
    text: str | None = None,
) -> Dict[str, Any]:
    """Change an element on the loaded page, as page scripts would.

    Tracked registry elements record the resulting mutations.

    Args:
        selector: CSS selector of the element to change.
        attributes: Attribute name -> new value; null removes the attribute.
        text: Replacement text content.
    """
    try:
        element = _find_on_page(selector)
        for name, value in (attributes or {}).items():
            if value is None:
                element.remove_attribute(name)
            else:
                element.set_attribute(name, value)
        if text is not None:
            element.set_text(text)
        service = await _registry()
        updated = await service.flush_mutations()
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {"success": True, "selector": selector, "tracked_elements_updated": updated}


# ============================================================
# Picker
# ============================================================


@mcp.tool
async def start_picker(
    show_info_box: bool | None = None,
    enable_right_click: bool | None = None,
    enable_keyboard_nav: bool | None = None,
) -> Dict[str, Any]:
    """Activate the element picker on the loaded page.

    Starting an already active picker is a no-op. Unset options fall
    back to the configured defaults.
    """
    container = get_container()
    defaults = container.config.picker_options()
    options = PickerOptions(
        show_info_box=defaults.show_info_box if show_info_box is None else show_info_box,
        enable_right_click=(
            defaults.enable_right_click if enable_right_click is None else enable_right_click
        ),
        enable_keyboard_nav=(
            defaults.enable_keyboard_nav if enable_keyboard_nav is None else enable_keyboard_nav
        ),
    )
    try:
        picker = container.get_picker(options)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    started = picker.start()
    return {
        "success": True,
        "started": started,
        "state": picker.state.value,
        "options": picker.options.to_dict(),
        "events": [str(e) for e in picker.pull_events()],
    }


@mcp.tool
async def stop_picker() -> Dict[str, Any]:
    """Deactivate the picker without selecting anything."""
    picker = get_container().picker
    if picker is None:
        return {"success": True, "stopped": False, "state": PickerState.IDLE.value}
    stopped = picker.stop()
    return {
        "success": True,
        "stopped": stopped,
        "state": picker.state.value,
        "events": [str(e) for e in picker.pull_events()],
    }


@mcp.tool
async def dispatch_pointer_event(event_type: PointerEventType, x: float, y: float) -> Dict[str, Any]:
    """Deliver a pointer event at viewport coordinates.

    mousemove highlights the element under the pointer, click picks it,
    contextmenu widens the highlight to the parent element.
    """
    container = get_container()
    try:
        document = container.require_document()
        picker = container.get_picker()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    event = DomEvent.pointer(event_type, x, y)
    document.dispatch_event(event)
    return await _picker_result(picker, event)


@mcp.tool
async def dispatch_key_event(key: KeyName) -> Dict[str, Any]:
    """Deliver a keydown event: Escape cancels the picker, Enter picks."""
    container = get_container()
    try:
        document = container.require_document()
        picker = container.get_picker()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    event = DomEvent.keyboard(key)
    document.dispatch_event(event)
    return await _picker_result(picker, event)


@mcp.tool
async def get_picker_state() -> Dict[str, Any]:
    """Report whether a page is loaded and what the picker is doing."""
    container = get_container()
    picker = container.picker
    return {
        "success": True,
        "page_loaded": container.document is not None,
        "url": container.document.url if container.document is not None else None,
        "state": picker.state.value if picker is not None else PickerState.IDLE.value,
        "highlighted": _describe(picker.current_element) if picker and picker.is_active else None,
        "options": (picker.options if picker else container.config.picker_options()).to_dict(),
    }


# ============================================================
# Selectors
# ============================================================


@mcp.tool
async def capture_element(
    selector: str,
    track_changes: bool | None = None,
    register: bool = True,
) -> Dict[str, Any]:
    """Capture an element by CSS selector, as if it had been picked.

    Args:
        selector: CSS selector; the first match is captured.
        track_changes: Record later mutations of the element.
        register: Save the capture in the registry as @element<N>.
    """
    container = get_container()
    try:
        element = _find_on_page(selector)
        snapshot = container.get_extractor().extract(element)
        if not register:
            return {"success": True, "data": snapshot.to_dict()}
        service = await _registry()
        added = await service.add_element(snapshot, track_changes=track_changes)
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {
        "success": True,
        "name": added["name"],
        "summary": format_element_summary(added["data"], added["name"]),
        "data": added["data"],
    }


@mcp.tool
async def generate_selectors(selector: str) -> Dict[str, Any]:
    """Synthesize the robust primary and fallback selectors for an element."""
    container = get_container()
    try:
        element = _find_on_page(selector)
        synthesizer = container.get_synthesizer()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    selectors = synthesizer.generate_selectors(element)
    return {
        "success": True,
        **selectors.to_dict(),
        "css_path": synthesizer.css_path(element),
        "xpath": synthesizer.xpath(element),
        "js_lookup": js_lookup(selectors.primary),
    }


# ============================================================
# Registry
# ============================================================


@mcp.tool
async def rename_element(old_name: ElementReference, new_name: ElementReference) -> Dict[str, Any]:
    """Give a saved element a custom name.

    Renaming to the element's default id (element<N>) clears the custom name.
    """
    try:
        service = await _registry()
        record = await service.rename_element(old_name, new_name)
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {
        "success": True,
        "name": record.name,
        "default_id": record.default_id,
        "custom_name": record.custom_name,
    }


@mcp.tool
async def delete_element(name: ElementReference) -> Dict[str, Any]:
    """Delete a saved element. Its default id is never reused."""
    try:
        service = await _registry()
        record = await service.delete_element(name)
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {"success": True, "deleted": record.name}


@mcp.tool
async def verify_element(
    name: ElementReference,
    tie_break: TieBreakMode | None = None,
) -> Dict[str, Any]:
    """Check a saved element against the loaded page, repairing its selector.

    Tries the primary selector, then the fallbacks, then re-anchors by
    content fingerprint.

    Args:
        name: Element name, with or without the leading @.
        tie_break: "strict" refuses to re-anchor when several elements match
            the fingerprint; "first" takes the first in document order.
    """
    try:
        service = await _registry()
        mode = FingerprintTieBreak.from_string(tie_break) if tie_break else None
        result = await service.verify_element(name, tie_break=mode)
        record = service.get_element(result.name)
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {"success": True, **result.to_dict(), "data": record.to_dict()}


@mcp.tool
async def find_element(name: ElementReference, include_info: bool = False) -> Dict[str, Any]:
    """Look up a saved element by default id or custom name."""
    try:
        service = await _registry()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    key = service.find_by_name(name)
    if key is None:
        return _error_payload(ElementNotFoundError(name))
    record = service.get_element(key)
    result = {"success": True, "name": key, "data": record.to_dict()}
    if include_info:
        result["info"] = format_element_info(result["data"])
    return result


@mcp.tool
async def list_elements() -> Dict[str, Any]:
    """List every saved element in insertion order."""
    try:
        service = await _registry()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    elements = service.get_all_elements()
    return {
        "success": True,
        "elements": elements,
        "count": len(elements),
        "counter": service.registry.counter,
    }


@mcp.tool
async def clear_elements() -> Dict[str, Any]:
    """Delete every saved element."""
    try:
        service = await _registry()
        removed = await service.clear()
        _log_registry_events(service)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {"success": True, "removed": removed}


@mcp.tool
async def process_references(text: str) -> Dict[str, Any]:
    """Resolve @name references in text to saved elements.

    Returns the matches and the text with a "Referenced Elements" block
    appended; the input text itself is not rewritten.
    """
    try:
        service = await _registry()
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    matches = service.process_references(text)
    return {
        "success": True,
        "references": [m.to_dict() for m in matches],
        "count": len(matches),
        "text": render_references(text, matches),
    }


@mcp.tool
async def set_element_tracking(name: ElementReference, enabled: bool = True) -> Dict[str, Any]:
    """Turn live mutation tracking on or off for a saved element."""
    try:
        service = await _registry()
        record = await service.set_tracking(name, enabled)
    except _HANDLED_ERRORS as e:
        return _error_payload(e)
    return {
        "success": True,
        "name": record.name,
        "track_changes": record.track_changes,
        "watching": service.is_tracking(record.name),
        "mutations": [m.to_dict() for m in record.mutations],
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Element picker MCP server entry point.")
    parser.add_argument(
        "--transport",
        dest="transport",
        choices=["stdio", "http", "sse"],
        help="Transport to use for the MCP server (default: stdio).",
    )
    parser.add_argument(
        "--host",
        dest="host",
        help="Host/interface for HTTP transport (default 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        help="Port for HTTP transport (default 8000).",
    )
    parser.add_argument(
        "--storage-dir",
        dest="storage_dir",
        help="Directory for the persisted registry, or ':memory:' (default ~/.element-mcp/storage).",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Log level for the MCP server (e.g., INFO, DEBUG).",
    )
    return parser


def main(argv: List[str] | None = None) -> None:
    """Start the element MCP server."""

    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    config = load_config(storage_dir=args.storage_dir, log_level=args.log_level)
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
    reset_container(config)
    logger.info(
        f"Starting element MCP server (storage: {config.storage_dir or 'default'}, "
        f"tie-break: {config.fingerprint_tie_break})"
    )

    try:
        run_kwargs: Dict[str, Any] = {}

        transport = args.transport or "stdio"
        run_kwargs["transport"] = transport

        if args.log_level:
            run_kwargs["log_level"] = args.log_level

        # Only pass host/port when using HTTP/SSE transports
        if transport != "stdio":
            if args.host:
                run_kwargs["host"] = args.host
            if args.port:
                run_kwargs["port"] = args.port

        mcp.run(**run_kwargs)
    except KeyboardInterrupt:
        logger.info("Element MCP server interrupted by user")


if __name__ == "__main__":
    main()
