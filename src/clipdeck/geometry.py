from clipdeck.config import DEFAULT_MENU_SIZE, MENU_PADDING
from clipdeck.models import ClipboardEntry, ContextMenuState


def place_menu(
    anchor_x: float,
    anchor_y: float,
    box_width: float,
    box_height: float,
    viewport_width: float,
    viewport_height: float,
    padding: float = MENU_PADDING,
) -> tuple[float, float]:
    """Position a menu opened at the pointer so it stays inside the viewport.

    The menu flips to the left of / above the anchor when it would cross the far edge.
    A second clamp against the far edge keeps a flipped menu on screen in small
    viewports; a menu larger than the viewport ends up pinned at ``padding``.
    """
    x = anchor_x
    y = anchor_y

    if x + box_width > viewport_width - padding:
        x = max(padding, anchor_x - box_width)
    if y + box_height > viewport_height - padding:
        y = max(padding, anchor_y - box_height)

    x = max(x, padding)
    y = max(y, padding)

    if x + box_width > viewport_width - padding:
        x = max(padding, viewport_width - box_width - padding)
    if y + box_height > viewport_height - padding:
        y = max(padding, viewport_height - box_height - padding)

    return x, y


def open_context_menu(
    anchor_x: float,
    anchor_y: float,
    item: ClipboardEntry,
    viewport: tuple[float, float],
    menu_size: tuple[float, float] = DEFAULT_MENU_SIZE,
    padding: float = MENU_PADDING,
) -> ContextMenuState:
    x, y = place_menu(anchor_x, anchor_y, menu_size[0], menu_size[1], viewport[0], viewport[1], padding)
    return ContextMenuState(visible=True, original_x=anchor_x, original_y=anchor_y, x=x, y=y, item=item)


def reposition_menu(
    state: ContextMenuState,
    measured_size: tuple[float, float],
    viewport: tuple[float, float],
    padding: float = MENU_PADDING,
) -> ContextMenuState:
    """Re-place an open menu from its original anchor once its real size is known."""
    if not state.visible:
        return state
    x, y = place_menu(
        state.original_x, state.original_y, measured_size[0], measured_size[1], viewport[0], viewport[1], padding
    )
    return ContextMenuState(
        visible=True, original_x=state.original_x, original_y=state.original_y, x=x, y=y, item=state.item
    )
