"""
Map surface interaction modes

The surface decides what a click, tap or marker drag means at any moment.
Exactly one InteractionMode is active; every (mode, action) pair that is not
in the transition table is ignored and logged.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from pathguard.core.constants import (
    MOBILE_BREAKPOINT_PX,
    SELECTION_MARKER_COLOR,
    SUBMITTED_MARKER_COLOR,
)
from pathguard.core.geo_utils import LngLat
from .notices import NoticeQueue

logger = logging.getLogger(__name__)


class InteractionMode(str, Enum):
    IDLE = "idle"
    AWAITING_LOCATION = "awaiting_location"
    FORM_OPEN = "form_open"
    PREVIEWING_SUBMISSION = "previewing_submission"


class SurfaceAction(str, Enum):
    REQUEST_REPORT = "request_report"
    TAP = "tap"
    DRAG_MARKER = "drag_marker"
    CANCEL = "cancel"
    COMPLETE_SUBMISSION = "complete_submission"
    DISMISS_PREVIEW = "dismiss_preview"


class DeviceProfile(str, Enum):
    """Primary input of the device the map runs on."""
    POINTER = "pointer"
    TOUCH = "touch"

    @classmethod
    def from_viewport_width(cls, width_px: int) -> "DeviceProfile":
        """Viewports up to the md breakpoint count as touch-primary."""
        return cls.TOUCH if width_px <= MOBILE_BREAKPOINT_PX else cls.POINTER


class Cursor(str, Enum):
    DEFAULT = ""
    CROSSHAIR = "crosshair"


@dataclass(frozen=True)
class SelectionMarker:
    """The marker showing where a report will be (or was) placed."""
    position: LngLat
    color: str
    draggable: bool


SELECTING_MODES = (InteractionMode.AWAITING_LOCATION, InteractionMode.FORM_OPEN)

AWAITING_BANNER = "📍 危険箇所を報告したい場所を地図上でタップしてください"
FORM_BANNER_SELECTED = "位置選択済み。地図クリックで変更可。"
FORM_BANNER_UNSELECTED = "地図をクリックして位置を選択"


class MapSurface:
    """
    Interaction mode state machine of the map.

    Usage:
        surface = MapSurface(DeviceProfile.TOUCH, center_provider=viewport.get_center)
        surface.request_report()      # idle -> awaiting_location
        surface.tap(LngLat(139.7, 35.69))  # -> form_open
    """

    def __init__(
        self,
        device: DeviceProfile,
        center_provider: Callable[[], LngLat],
        notices: Optional[NoticeQueue] = None
    ):
        """
        Args:
            device: Pointer or touch device
            center_provider: Returns the current viewport center
            notices: Queue receiving transition notices
        """
        self.device = device
        self.center_provider = center_provider
        self.notices = notices or NoticeQueue()

        self.mode = InteractionMode.IDLE
        self.selected_location: Optional[LngLat] = None
        self.submitted_location: Optional[LngLat] = None

        self.help_dismissed = False
        self.help_dismissed_permanently = False

        self._transitions: Dict[
            Tuple[InteractionMode, SurfaceAction], Callable[..., InteractionMode]
        ] = {
            (InteractionMode.IDLE, SurfaceAction.REQUEST_REPORT): self._start_flow,
            (InteractionMode.AWAITING_LOCATION, SurfaceAction.REQUEST_REPORT): self._cancel_selection,
            (InteractionMode.FORM_OPEN, SurfaceAction.REQUEST_REPORT): self._start_flow,
            (InteractionMode.PREVIEWING_SUBMISSION, SurfaceAction.REQUEST_REPORT): self._start_flow,
            (InteractionMode.AWAITING_LOCATION, SurfaceAction.TAP): self._pick_location,
            (InteractionMode.FORM_OPEN, SurfaceAction.TAP): self._move_location,
            (InteractionMode.FORM_OPEN, SurfaceAction.DRAG_MARKER): self._drag_location,
            (InteractionMode.AWAITING_LOCATION, SurfaceAction.CANCEL): self._cancel_selection,
            (InteractionMode.FORM_OPEN, SurfaceAction.CANCEL): self._close_form,
            (InteractionMode.FORM_OPEN, SurfaceAction.COMPLETE_SUBMISSION): self._show_preview,
            (InteractionMode.PREVIEWING_SUBMISSION, SurfaceAction.DISMISS_PREVIEW): self._close_preview,
        }

    # =========================================================================
    # Actions
    # =========================================================================

    def request_report(self) -> bool:
        """The "report" button was pressed."""
        return self._dispatch(SurfaceAction.REQUEST_REPORT)

    def tap(self, position: LngLat) -> bool:
        """The map was clicked or tapped at ``position``."""
        return self._dispatch(SurfaceAction.TAP, position)

    def drag_marker(self, position: LngLat) -> bool:
        """The selection marker was dropped at ``position``."""
        return self._dispatch(SurfaceAction.DRAG_MARKER, position)

    def cancel(self) -> bool:
        return self._dispatch(SurfaceAction.CANCEL)

    def complete_submission(self, position: Optional[LngLat] = None) -> bool:
        """A report was created at ``position`` (defaults to the selection)."""
        return self._dispatch(SurfaceAction.COMPLETE_SUBMISSION, position)

    def dismiss_preview(self) -> bool:
        return self._dispatch(SurfaceAction.DISMISS_PREVIEW)

    def dismiss_help(self, permanently: bool = False) -> None:
        """Hide the advisory banner for this flow, or for good."""
        self.help_dismissed = True
        if permanently:
            self.help_dismissed_permanently = True
            self.notices.push("ヘルプを非表示にしました", "？ボタンから再表示できます")

    def show_help(self) -> None:
        self.help_dismissed = False
        self.help_dismissed_permanently = False

    def _dispatch(self, action: SurfaceAction, *args) -> bool:
        handler = self._transitions.get((self.mode, action))
        if handler is None:
            logger.debug(f"Ignored {action.value} in mode {self.mode.value}")
            return False

        old_mode = self.mode
        self.mode = handler(*args)
        logger.debug(f"{action.value}: {old_mode.value} -> {self.mode.value}")
        return True

    # =========================================================================
    # Transitions
    # =========================================================================

    def _start_flow(self) -> InteractionMode:
        self.selected_location = None
        self.submitted_location = None
        self.help_dismissed = self.help_dismissed_permanently

        if self.device is DeviceProfile.TOUCH:
            self.notices.push("地点選択", "地図をタップして報告地点を選択してください。")
            return InteractionMode.AWAITING_LOCATION

        self.selected_location = self.center_provider()
        return InteractionMode.FORM_OPEN

    def _cancel_selection(self) -> InteractionMode:
        self.selected_location = None
        self.notices.push("地点選択をキャンセルしました")
        return InteractionMode.IDLE

    def _pick_location(self, position: LngLat) -> InteractionMode:
        self.selected_location = position
        self.notices.push("地点を選択しました", "選択した地点で危険箇所を報告できます")
        return InteractionMode.FORM_OPEN

    def _move_location(self, position: LngLat) -> InteractionMode:
        self.selected_location = position
        self.notices.push("地点を変更しました", "新しい位置に報告地点を変更しました")
        return InteractionMode.FORM_OPEN

    def _drag_location(self, position: LngLat) -> InteractionMode:
        self.selected_location = position
        self.notices.push("地点を移動しました", "ドラッグで位置を調整しました")
        return InteractionMode.FORM_OPEN

    def _close_form(self) -> InteractionMode:
        self.selected_location = None
        return InteractionMode.IDLE

    def _show_preview(self, position: Optional[LngLat] = None) -> InteractionMode:
        self.submitted_location = position or self.selected_location
        self.selected_location = None
        return InteractionMode.PREVIEWING_SUBMISSION

    def _close_preview(self) -> InteractionMode:
        self.submitted_location = None
        return InteractionMode.IDLE

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def cursor(self) -> Cursor:
        return Cursor.CROSSHAIR if self.mode in SELECTING_MODES else Cursor.DEFAULT

    @property
    def banner_visible(self) -> bool:
        return self.mode in SELECTING_MODES and not self.help_dismissed

    @property
    def banner_text(self) -> Optional[str]:
        if not self.banner_visible:
            return None
        if self.mode is InteractionMode.AWAITING_LOCATION:
            return AWAITING_BANNER
        return FORM_BANNER_SELECTED if self.selected_location else FORM_BANNER_UNSELECTED

    @property
    def selection_marker(self) -> Optional[SelectionMarker]:
        """Draggable blue marker while selecting, green fixed marker after submitting."""
        if self.mode is InteractionMode.FORM_OPEN and self.selected_location:
            return SelectionMarker(self.selected_location, SELECTION_MARKER_COLOR, draggable=True)
        if self.mode is InteractionMode.PREVIEWING_SUBMISSION and self.submitted_location:
            return SelectionMarker(self.submitted_location, SUBMITTED_MARKER_COLOR, draggable=False)
        return None
