"""Error taxonomy and admin error notifications with deduplication."""

import hashlib
import html
import logging
import time

from config import config

logger = logging.getLogger("bugle.errors")

# {hash_prefix: timestamp} for dedup
_sent: dict[str, float] = {}
_DEDUP_TTL = 3600  # 1 hour


class SummarizerError(Exception):
    """Base for every failure the pipeline reports back as a tagged result."""

    kind = "error"


class ValidationError(SummarizerError):
    """Bad input: malformed URL, text too short, missing API key."""

    kind = "validation"


class NetworkError(SummarizerError):
    """A fetch or proxy failed."""

    kind = "network"


class ContentError(SummarizerError):
    """The page was fetched but held nothing usable."""

    kind = "content"


class UpstreamAPIError(SummarizerError):
    """The model call failed or returned nothing."""

    kind = "upstream"


async def notify_admin(bot, error_msg: str, context: str = "", kind: str = ""):
    """Send an error DM to all admin users. Deduplicates within 1 hour.

    kind is the SummarizerError kind of the failure, shown in the heading.
    """
    if not config.admin_user_ids:
        return

    dedup_payload = f"{kind}\n{context}\n{error_msg}"
    key = hashlib.sha256(dedup_payload.encode()).hexdigest()[:16]
    now = time.time()

    stale = [k for k, ts in _sent.items() if now - ts > _DEDUP_TTL]
    for k in stale:
        del _sent[k]

    if key in _sent:
        return
    _sent[key] = now

    # Keep in-memory dedup map bounded
    if len(_sent) > 1000:
        oldest_key = min(_sent, key=_sent.get)
        del _sent[oldest_key]

    ctx = f"\n<b>Context:</b> {html.escape(context)}" if context else ""
    heading = f"bugle {html.escape(kind)} error" if kind else "bugle error"
    text = f"<b>{heading}</b>{ctx}\n<pre>{html.escape(error_msg[:1500])}</pre>"

    for admin_id in config.admin_user_ids:
        try:
            await bot.send_message(
                chat_id=admin_id,
                text=text,
                parse_mode="HTML",
            )
        except Exception as e:
            logger.warning(f"Failed to notify admin {admin_id}: {e}")
