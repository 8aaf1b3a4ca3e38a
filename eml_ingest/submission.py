"""Conversion of a parsed email into a gateway submission request."""

from __future__ import annotations

from .config import EmailIngestConfig
from .models import AttachmentMetadata, EmailAddress, IngestEmailRequest
from .parser import Address, ParsedEmail


def build_ingest_request(
    parsed: ParsedEmail,
    *,
    config: EmailIngestConfig,
    job_id: str,
    content_id: str,
) -> IngestEmailRequest:
    """Build the submit payload for *parsed* under *job_id*.

    Attachment content is never sent, only its metadata.  The headers map
    always carries formatted ``From``/``To``/``Cc`` values so the remote
    pipeline can classify the message; headers preserved by the parser are
    merged over them.
    """
    headers: dict[str, str] = {}
    if parsed.from_address is not None and parsed.from_address.email:
        headers["From"] = parsed.from_address.formatted()
    if parsed.to:
        headers["To"] = format_address_list(parsed.to)
    if parsed.cc:
        headers["Cc"] = format_address_list(parsed.cc)
    headers.update(parsed.headers)

    return IngestEmailRequest(
        tenant_id=config.tenant_id,
        job_id=job_id,
        content_id=content_id,
        message_id=parsed.message_id,
        content_hash=parsed.content_hash,
        subject=parsed.subject,
        body_plain=parsed.body_text or "",
        body_html=parsed.body_html or "",
        source_tag=config.source_tag,
        labels=list(config.labels),
        in_reply_to=parsed.in_reply_to,
        references=list(parsed.references),
        from_address=_to_wire(parsed.from_address) if parsed.from_address else None,
        to=[_to_wire(a) for a in parsed.to],
        cc=[_to_wire(a) for a in parsed.cc],
        bcc=[_to_wire(a) for a in parsed.bcc],
        sent_at=parsed.date,
        received_at=parsed.date,
        attachments=[
            AttachmentMetadata(
                filename=a.filename,
                mime_type=a.mime_type,
                size_bytes=a.size,
                is_inline=a.is_inline,
            )
            for a in parsed.attachments
        ],
        headers=headers,
    )


def format_address_list(addresses: list[Address]) -> str:
    return ", ".join(a.formatted() for a in addresses)


def _to_wire(address: Address) -> EmailAddress:
    return EmailAddress(name=address.name, address=address.email)
