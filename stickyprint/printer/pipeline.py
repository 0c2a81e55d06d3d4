"""Print submission over the currently connected endpoint."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from ..config import PrintConfig, ProbeConfig
from ..errors import NotConnectedError, PrinterError, PrinterIOError, PrintJobError
from ..models import ConnectionEndpoint
from ..security import sanitize_log_message, validate_text_input
from .mapping_utils import map_align, map_cut, map_size_class, map_underline
from .transport import PrinterDevice, create_device, opened

if TYPE_CHECKING:
    from PIL import Image

    from ..connection.state_machine import ConnectionStateMachine

_LOGGER = logging.getLogger(__name__)

DeviceFactory = Callable[[ConnectionEndpoint], PrinterDevice]


def _get_dummy_printer() -> type[Any]:
    from escpos.printer import Dummy  # noqa: PLC0415

    return Dummy  # type: ignore[no-any-return]


@dataclass(frozen=True)
class PrintJob:
    """One note as handed over by the editor."""

    content: str | None = None
    image: Image.Image | None = None
    alignment: str | None = None
    size_class: str | int | None = None
    bold: bool = False
    underline: bool = False


class PrintPipeline:
    """Stream formatted notes to the connected printer.

    Submitting never triggers a scan: a print while disconnected fails
    immediately. I/O failures are reported to the caller and leave the
    connection status alone; the next periodic reconcile decides whether
    the printer is really gone.
    """

    def __init__(
        self,
        machine: ConnectionStateMachine,
        config: PrintConfig | None = None,
        *,
        probe_config: ProbeConfig | None = None,
        device_factory: DeviceFactory | None = None,
    ) -> None:
        self._machine = machine
        self._config = config or PrintConfig()
        self._probe_config = probe_config or ProbeConfig()
        self._device_factory = device_factory or self._default_device
        self._lock = asyncio.Lock()
        self._last_job: PrintJob | None = None

    @property
    def config(self) -> PrintConfig:
        return self._config

    @property
    def last_job(self) -> PrintJob | None:
        return self._last_job

    def _default_device(self, endpoint: ConnectionEndpoint) -> PrinterDevice:
        return create_device(endpoint, self._config, self._probe_config)

    async def submit(
        self,
        content: str,
        alignment: str | None = None,
        size_class: str | int | None = None,
        bold: bool = False,
        underline: bool = False,
    ) -> None:
        """Print a text note.

        Raises:
            NotConnectedError: no printer is connected
            PrinterIOError: opening or writing to the printer failed
            PrintJobError: the note could not be encoded
        """
        job = PrintJob(
            content=validate_text_input(content),
            alignment=alignment,
            size_class=size_class,
            bold=bool(bold),
            underline=bool(underline),
        )
        await self._submit_job(job)

    async def submit_image(self, image: Image.Image, alignment: str | None = None) -> None:
        """Print a pre-rendered bitmap (advanced mode)."""
        await self._submit_job(PrintJob(image=image, alignment=alignment))

    async def reprint_last(self) -> bool:
        """Submit the last printed job again; False if nothing was printed yet."""
        if self._last_job is None:
            return False
        await self._submit_job(self._last_job)
        return True

    async def _submit_job(self, job: PrintJob) -> None:
        snapshot = self._machine.snapshot()
        if not snapshot.connected or snapshot.endpoint is None:
            raise NotConnectedError(snapshot.status.value)
        endpoint = snapshot.endpoint

        try:
            segments = await asyncio.to_thread(self._render, job)
        except Exception as err:
            reason = sanitize_log_message(str(err) or type(err).__name__)
            _LOGGER.warning("Could not encode print job: %s", reason)
            raise PrintJobError(reason) from err

        async with self._lock:
            try:
                device = self._device_factory(endpoint)
                async with opened(device):
                    for segment in segments:
                        if segment:
                            await device.write(segment)
            except PrinterError:
                raise
            except Exception as err:
                reason = sanitize_log_message(str(err) or type(err).__name__)
                _LOGGER.warning("Print to %s failed: %s", endpoint.describe(), reason)
                raise PrinterIOError(endpoint, reason) from err
        self._last_job = job
        _LOGGER.debug("Printed job on %s (%s bytes)", endpoint.describe(), sum(len(s) for s in segments))

    def _new_buffer(self) -> Any:
        dummy_class = _get_dummy_printer()
        if self._config.profile:
            return dummy_class(profile=self._config.profile)
        return dummy_class()

    def _render(self, job: PrintJob) -> list[bytes]:
        """Encode a job as [style header, content, feed/cut trailer]."""
        align = map_align(job.alignment, default=self._config.default_align)

        header = self._new_buffer()
        if job.image is not None:
            header.set(align=align)
        else:
            mult = map_size_class(job.size_class)
            header.set(
                align=align,
                bold=job.bold,
                underline=map_underline(job.underline),
                custom_size=True,
                width=mult,
                height=mult,
            )

        body = self._new_buffer()
        if job.image is not None:
            body.image(job.image)
        else:
            text = self._apply_margin(job.content or "")
            if not text.endswith("\n"):
                text += "\n"
            if self._config.encoding:
                body._raw(text.encode(self._config.encoding, errors="replace"))
            else:
                body.text(text)

        trailer = self._new_buffer()
        if self._config.feed_lines > 0:
            trailer.ln(self._config.feed_lines)
        cut_mode = map_cut(self._config.cut)
        if cut_mode:
            trailer.cut(mode=cut_mode)

        return [header.output, body.output, trailer.output]

    def _apply_margin(self, text: str) -> str:
        margin = " " * max(0, self._config.left_margin)
        if not margin:
            return text
        return "\n".join(margin + line if line else line for line in text.split("\n"))
