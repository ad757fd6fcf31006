"""
Biometric widget handle for the Biometric Access demo.

The vendor biometric widget allows only one live instance at a time. This
module wraps it as an explicitly owned resource:

    initialize(uid)  -> acquire the single instance, mint a fresh csid
    start(action_id) -> open the camera and begin the capture session
    release()        -> stop the session and destroy the instance

release() is synchronous and idempotent, so it is safe to call from cancel
paths, failure paths and context-manager exits alike. The csid exists only
in memory for the lifetime of one acquisition.

The widget streams frames to its vendor backend on its own; this code only
manages its lifecycle and reads the csid and the video source.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class WidgetBusyError(RuntimeError):
    """Raised when initialize() is called while another instance is live."""


class WidgetNotInitializedError(RuntimeError):
    """Raised when the widget is used before initialize()."""


@dataclass
class WidgetConfig:
    """Vendor widget settings."""
    cid: str = "ivengprod"
    base_url: str = "https://aa-api.a2.ironvest.com"
    frequency_ms: int = 2000
    size: str = "fill"
    opacity: float = 1.0
    use_virtual_avatar: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "WidgetConfig":
        if config is None:
            from core.config import get_widget_config
            config = get_widget_config()

        known = {"cid", "base_url", "frequency_ms", "size", "opacity", "use_virtual_avatar"}
        return cls(
            cid=config.get("cid", cls.cid),
            base_url=config.get("base_url", cls.base_url),
            frequency_ms=int(config.get("frequency_ms", cls.frequency_ms)),
            size=config.get("size", cls.size),
            opacity=float(config.get("opacity", cls.opacity)),
            use_virtual_avatar=bool(config.get("use_virtual_avatar", cls.use_virtual_avatar)),
            extra={k: v for k, v in config.items() if k not in known},
        )


@dataclass
class SessionOptions:
    """Options for one capture session."""
    action_id: str = "default"
    opacity: Optional[float] = None
    use_virtual_avatar: Optional[bool] = None
    frequency_ms: Optional[int] = None


class BiometricWidget:
    """
    Exclusive handle on the vendor biometric widget.

    Attributes:
        config: Widget settings.
        source: The open video source while a session is running, else None.
    """

    # One live vendor instance per process
    _instance_lock = threading.Lock()
    _live_owner: Optional["BiometricWidget"] = None

    def __init__(self, config: Optional[WidgetConfig] = None, source_factory: Optional[Callable[[], Any]] = None):
        """
        Args:
            config: Widget settings; defaults to the `widget` config section.
            source_factory: Callable returning a video source with open()/close()
                            (defaults to a WebcamCapture built from config).
        """
        self.config = config or WidgetConfig.from_config()
        self._source_factory = source_factory or self._default_source_factory
        self.source = None
        self.session_options: Optional[SessionOptions] = None
        self.session_settings: Dict[str, Any] = {}
        self._csid = ""
        self._uid = ""
        self._initialized = False

    def _default_source_factory(self):
        from frontend.components.webcam_capture import CaptureConfig, WebcamCapture
        return WebcamCapture(CaptureConfig.from_widget_config(self.config.extra))

    # ==================== Lifecycle ====================

    def initialize(self, uid: str) -> str:
        """
        Acquire the widget for a user and mint a new csid.

        Args:
            uid: The account identifier the capture is for.

        Returns:
            The new csid.

        Raises:
            WidgetBusyError: If a widget instance is already live.
        """
        with BiometricWidget._instance_lock:
            if BiometricWidget._live_owner is not None:
                raise WidgetBusyError(
                    "Biometric widget already initialized. Release it before starting again."
                )
            BiometricWidget._live_owner = self

        self._csid = str(uuid.uuid4())
        self._uid = uid
        self._initialized = True
        logger.info(f"Biometric widget initialized: cid={self.config.cid}, uid={uid}, csid={self._csid}")
        return self._csid

    def start(self, options: Optional[SessionOptions] = None) -> None:
        """
        Start a capture session: open the camera.

        Raises:
            WidgetNotInitializedError: If initialize() has not been called.
            RuntimeError: If the camera cannot be opened (the widget is released).
        """
        if not self._initialized:
            raise WidgetNotInitializedError("Biometric widget not initialized. Call initialize() first.")

        self.session_options = options or SessionOptions()
        self.session_settings = self.resolve_settings(self.session_options)
        self.source = self._source_factory()
        if self.source.open() is False:
            self.release()
            raise RuntimeError("Camera permission denied or camera unavailable")

        settings = self.session_settings
        logger.info(
            f"Biometric session started: action={settings['action_id']}, "
            f"frequency={settings['frequency_ms']}ms, opacity={settings['opacity']}, "
            f"virtual_avatar={settings['use_virtual_avatar']}"
        )

    def resolve_settings(self, options: SessionOptions) -> Dict[str, Any]:
        """Per-session settings: options where given, widget config otherwise."""
        return {
            "action_id": options.action_id,
            "opacity": self.config.opacity if options.opacity is None else options.opacity,
            "use_virtual_avatar": (
                self.config.use_virtual_avatar if options.use_virtual_avatar is None
                else options.use_virtual_avatar
            ),
            "frequency_ms": self.config.frequency_ms if options.frequency_ms is None else options.frequency_ms,
        }

    def release(self) -> None:
        """Stop the capture session and destroy the instance. Safe to call repeatedly."""
        if self.source is not None:
            try:
                self.source.close()
            except Exception as e:
                logger.error(f"Error stopping biometric session: {e}")
            self.source = None

        if self._initialized:
            logger.info(f"Biometric widget released: csid={self._csid}")

        self._csid = ""
        self._uid = ""
        self._initialized = False
        self.session_options = None
        self.session_settings = {}

        with BiometricWidget._instance_lock:
            if BiometricWidget._live_owner is self:
                BiometricWidget._live_owner = None

    # ==================== Accessors ====================

    @property
    def csid(self) -> str:
        """Current session identifier, or '' when not initialized."""
        return self._csid

    @property
    def uid(self) -> str:
        return self._uid

    @property
    def is_live(self) -> bool:
        return self._initialized

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
