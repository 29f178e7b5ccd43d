"""
QR Code Generator Module - QR Attendance Session Service

This module handles the scan payload that travels inside an attendance QR
code. It serializes a session snapshot into the compact JSON string the
student's device scans, parses that string back when it is submitted, and
renders it as a PNG data URL for the professor's screen.

The payload is untrusted once it leaves the server: decoding only checks that
it is well formed. Whether the session is alive is decided by the session
store, never by the fields embedded here.

Features:
- Session payload serialization (camelCase wire format, epoch milliseconds)
- Strict payload parsing with a single malformed-payload error
- QR code rendering to base64 PNG data URLs
- Configurable QR code size, border and colors
"""

import io
import base64
import json
import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Optional

import qrcode
from PIL import Image

from qr_attendance.modules.errors import MalformedPayloadError

PAYLOAD_FIELDS = (
    'sessionId', 'subjectCode', 'className', 'classLocation',
    'professorEmail', 'timestamp', 'expiryTime'
)


@dataclass
class ScanPayload:
    """Data structure for the session snapshot carried inside a QR code."""
    session_id: str
    subject_code: str
    class_name: str
    class_location: Any
    owner_identity: str
    created_at: int
    expires_at: int

    @classmethod
    def from_session(cls, session) -> 'ScanPayload':
        return cls(
            session_id=session.session_id,
            subject_code=session.subject_code,
            class_name=session.class_name,
            class_location=session.class_location,
            owner_identity=session.owner_identity,
            created_at=int(session.created_at * 1000),
            expires_at=int(session.expires_at * 1000)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'subjectCode': self.subject_code,
            'className': self.class_name,
            'classLocation': self.class_location,
            'professorEmail': self.owner_identity,
            'timestamp': self.created_at,
            'expiryTime': self.expires_at
        }


class QRGenerator:
    """
    QR code payload codec and renderer for attendance sessions.
    """

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        """
        Initialize the QR code generator.

        Args:
            settings (dict): Overrides for the default rendering settings
        """
        self.logger = logging.getLogger(__name__)

        self.default_settings = {
            'version': None,  # let qrcode pick the smallest version that fits
            'error_correction': qrcode.constants.ERROR_CORRECT_M,
            'box_size': 10,
            'border': 2,
            'width': 400,
            'fill_color': '#000000',
            'back_color': '#FFFFFF'
        }
        if settings:
            self.default_settings.update(settings)

    def encode_payload(self, session) -> str:
        """
        Serialize a live session into the string encoded in its QR code.

        Args:
            session: AttendanceSession instance

        Returns:
            str: Compact JSON payload
        """
        payload = ScanPayload.from_session(session)
        return json.dumps(payload.to_dict(), separators=(',', ':'))

    def decode_payload(self, raw: Any) -> ScanPayload:
        """
        Parse a scanned payload.

        Args:
            raw: JSON string (or an already-parsed dict) submitted by the scanner

        Returns:
            ScanPayload: Parsed payload

        Raises:
            MalformedPayloadError: If the payload is not a well-formed session payload
        """
        if isinstance(raw, (str, bytes)):
            try:
                data = json.loads(raw)
            except (TypeError, ValueError):
                raise MalformedPayloadError()
        else:
            data = raw

        if not isinstance(data, dict):
            raise MalformedPayloadError()

        missing = [name for name in PAYLOAD_FIELDS if name not in data]
        if missing:
            raise MalformedPayloadError(missing_fields=missing)

        session_id = data['sessionId']
        if not isinstance(session_id, str) or not session_id.strip():
            raise MalformedPayloadError()

        for name in ('subjectCode', 'className', 'professorEmail'):
            if not isinstance(data[name], str):
                raise MalformedPayloadError()

        for name in ('timestamp', 'expiryTime'):
            value = data[name]
            if isinstance(value, bool) or not isinstance(value, Real):
                raise MalformedPayloadError()
            # json.loads accepts Infinity and NaN
            if isinstance(value, float) and not math.isfinite(value):
                raise MalformedPayloadError()

        return ScanPayload(
            session_id=session_id,
            subject_code=data['subjectCode'],
            class_name=data['className'],
            class_location=data['classLocation'],
            owner_identity=data['professorEmail'],
            created_at=int(data['timestamp']),
            expires_at=int(data['expiryTime'])
        )

    def render_data_url(self, data: str, custom_settings: Optional[Dict[str, Any]] = None) -> str:
        """
        Render a payload string as a QR code PNG data URL.

        Args:
            data (str): Payload to encode
            custom_settings (dict): Per-call rendering overrides

        Returns:
            str: ``data:image/png;base64,...``
        """
        settings = self.default_settings.copy()
        if custom_settings:
            settings.update(custom_settings)

        qr = qrcode.QRCode(
            version=settings['version'],
            error_correction=settings['error_correction'],
            box_size=settings['box_size'],
            border=settings['border']
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(
            fill_color=settings['fill_color'],
            back_color=settings['back_color']
        ).get_image().convert('RGB')

        width = settings.get('width')
        if width:
            img = img.resize((width, width), Image.NEAREST)

        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        img_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')

        self.logger.debug(f"QR code rendered ({img.size[0]}x{img.size[1]}, {len(data)} bytes of data)")
        return f"data:image/png;base64,{img_base64}"
