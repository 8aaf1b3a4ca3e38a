"""MIME parser: raw RFC 5322 bytes -> :class:`ParsedEmail`.

Walks the whole message to extract addressing, threading headers, body
text and HTML, and attachment metadata.  Attachment payloads are sized
but not retained; the gateway only receives metadata.
"""

from __future__ import annotations

import email
import email.errors
import email.message
import email.policy
import email.utils
import hashlib
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from .errors import ParseError

PRESERVED_HEADERS: tuple[str, ...] = (
    "Auto-Submitted",
    "Precedence",
    "List-Id",
    "List-Unsubscribe",
    "X-Auto-Response-Suppress",
)


@dataclass(frozen=True)
class Address:
    """An email address with optional display name."""

    email: str
    name: str = ""

    def formatted(self) -> str:
        """Render as an RFC 5322 header value."""
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email


@dataclass
class AttachmentInfo:
    """Metadata for a single attachment."""

    filename: str
    mime_type: str
    size: int
    is_inline: bool = False
    content_id: str = ""


@dataclass
class ParsedEmail:
    """Structured representation of a parsed email."""

    message_id: str
    content_hash: str
    subject: str
    from_address: Address | None
    to: list[Address]
    cc: list[Address]
    bcc: list[Address]
    date: datetime
    body_text: str | None
    body_html: str | None
    message_id_synthetic: bool = False
    date_fallback: bool = False
    reply_to: Address | None = None
    in_reply_to: str = ""
    references: list[str] = field(default_factory=list)
    attachments: list[AttachmentInfo] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    file_path: str = ""

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)


class MimeParser:
    """Stateless parser: raw RFC 822 bytes -> ParsedEmail.

    Safe to share between worker threads.
    """

    def parse_file(self, path: str | os.PathLike[str]) -> ParsedEmail:
        """Read and parse the file at *path*.

        A missing ``Date`` header falls back to the file's modification time.
        """
        file_path = Path(path).absolute()
        try:
            raw = file_path.read_bytes()
            mtime = datetime.fromtimestamp(file_path.stat().st_mtime, tz=UTC)
        except OSError as exc:
            raise ParseError(f"failed to read file: {exc}") from exc

        parsed = self.parse(raw, fallback_date=mtime)
        parsed.file_path = str(file_path)
        return parsed

    def parse(self, raw: bytes, *, fallback_date: datetime | None = None) -> ParsedEmail:
        if not raw.strip():
            raise ParseError("empty message")

        try:
            msg = email.message_from_bytes(raw, policy=email.policy.default)
        except (ValueError, TypeError, LookupError, email.errors.MessageError) as exc:
            raise ParseError(f"failed to parse email: {exc}") from exc

        if not msg.keys() or any(
            isinstance(defect, email.errors.MissingHeaderBodySeparatorDefect)
            for defect in msg.defects
        ):
            raise ParseError("failed to parse email: malformed header block")

        # The stdlib header classes can raise almost anything on hostile input.
        try:
            return self._build(msg, raw, fallback_date)
        except Exception as exc:
            raise ParseError(f"failed to parse email: {exc}") from exc

    def _build(
        self,
        msg: email.message.EmailMessage,
        raw: bytes,
        fallback_date: datetime | None,
    ) -> ParsedEmail:
        content_hash = hashlib.sha256(raw).hexdigest()

        message_id = _clean_message_id(_header(msg, "Message-ID"))
        synthetic = False
        if not message_id:
            message_id = f"<synthetic-{content_hash[:16]}@eml-ingest.local>"
            synthetic = True

        date, date_fallback = _parse_date(_header(msg, "Date"), fallback_date)
        body_text, body_html = self._extract_bodies(msg)
        senders = _parse_address_list(_header(msg, "From"))
        reply_to = _parse_address_list(_header(msg, "Reply-To"))

        return ParsedEmail(
            message_id=message_id,
            message_id_synthetic=synthetic,
            content_hash=content_hash,
            subject=_header(msg, "Subject"),
            from_address=senders[0] if senders else None,
            to=_parse_address_list(_header(msg, "To")),
            cc=_parse_address_list(_header(msg, "Cc")),
            bcc=_parse_address_list(_header(msg, "Bcc")),
            reply_to=reply_to[0] if reply_to else None,
            date=date,
            date_fallback=date_fallback,
            body_text=body_text,
            body_html=body_html,
            in_reply_to=_clean_message_id(_header(msg, "In-Reply-To")),
            references=_parse_references(_header(msg, "References")),
            attachments=self._extract_attachments(msg),
            headers={h: v for h in PRESERVED_HEADERS if (v := _header(msg, h))},
        )

    def _extract_bodies(self, msg: email.message.Message) -> tuple[str | None, str | None]:
        """Walk MIME parts and return (plain_text, html_text)."""
        body_text: str | None = None
        body_html: str | None = None

        for part in msg.walk():
            if part.get_content_maintype() == "multipart" or _is_attachment(part):
                continue

            content_type = part.get_content_type()
            if content_type not in ("text/plain", "text/html"):
                continue

            payload = _text_content(part)
            if content_type == "text/plain" and body_text is None:
                body_text = payload
            elif content_type == "text/html" and body_html is None:
                body_html = payload

        return body_text, body_html

    def _extract_attachments(self, msg: email.message.Message) -> list[AttachmentInfo]:
        attachments: list[AttachmentInfo] = []

        for part in msg.walk():
            if part.get_content_maintype() == "multipart" or not _is_attachment(part):
                continue

            payload = part.get_payload(decode=True)
            disposition = (part.get_content_disposition() or "").lower()
            attachments.append(
                AttachmentInfo(
                    filename=part.get_filename() or "unnamed",
                    mime_type=part.get_content_type(),
                    size=len(payload) if isinstance(payload, bytes) else 0,
                    is_inline=disposition == "inline",
                    content_id=_clean_message_id(str(part.get("Content-ID", ""))),
                )
            )

        return attachments


def _is_attachment(part: email.message.Message) -> bool:
    """Attachment: Content-Disposition attachment, or a named non-text part."""
    disposition = (part.get_content_disposition() or "").lower()
    if disposition == "attachment":
        return True
    return bool(part.get_filename()) and part.get_content_maintype() != "text"


def _text_content(part: email.message.Message) -> str:
    payload = part.get_payload(decode=True)
    if not isinstance(payload, bytes):
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        # Unknown charset label; fall back rather than fail the whole message.
        return payload.decode("utf-8", errors="replace")


def _header(msg: email.message.Message, name: str) -> str:
    value = msg.get(name)
    if value is None:
        return ""
    return str(value).strip()


def _parse_address_list(header_value: str) -> list[Address]:
    if not header_value:
        return []
    return [
        Address(email=addr, name=name)
        for name, addr in email.utils.getaddresses([header_value])
        if addr
    ]


def _clean_message_id(value: str) -> str:
    """Normalize a message ID so it is always wrapped in angle brackets."""
    value = value.strip()
    if not value:
        return ""
    if not value.startswith("<"):
        value = "<" + value
    if not value.endswith(">"):
        value += ">"
    return value


def _parse_references(value: str) -> list[str]:
    return [ref for token in value.split() if (ref := _clean_message_id(token))]


def _parse_date(value: str, fallback: datetime | None) -> tuple[datetime, bool]:
    if value:
        try:
            parsed = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed, False
    return (fallback or datetime.now(UTC)), True
