import logging

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler

from prometheus_client import REGISTRY

logger = logging.getLogger(__name__)


def _sum_samples(family: str, sample_name: str, **labels: str) -> int:
    """Sum every sample of ``family`` whose labels include ``labels``."""
    total = 0.0
    for mf in REGISTRY.collect():
        if mf.name != family:
            continue
        for sample in mf.samples:
            if sample.name != sample_name:
                continue
            if all(sample.labels.get(k) == v for k, v in labels.items()):
                total += sample.value
    return int(total)


def _build_status_text() -> str:
    lookups = "tokenbot_lookups"
    lookups_sample = "tokenbot_lookups_total"
    searches = (
        _sum_samples(lookups, lookups_sample, kind="inline")
        + _sum_samples(lookups, lookups_sample, kind="command")
    )
    empty = _sum_samples(lookups, lookups_sample, result="empty")
    details = _sum_samples(lookups, lookups_sample, kind="detail", result="ok")

    api = "tokenbot_api_requests"
    api_sample = "tokenbot_api_requests_total"
    api_ok = _sum_samples(api, api_sample, outcome="ok")
    api_failed = sum(
        _sum_samples(api, api_sample, outcome=o)
        for o in ("http_error", "network_error", "decode_error")
    )
    cancelled = _sum_samples(api, api_sample, outcome="cancelled")
    stale = _sum_samples("tokenbot_stale_responses", "tokenbot_stale_responses_total")

    lines = [
        "📊 *TokenBot — status*",
        "",
        f"🔍 Searches: {searches} ({empty} without results)",
        f"🪙 Detail views: {details}",
        f"🌐 API calls: {api_ok} ok · {api_failed} failed · {cancelled} cancelled",
        f"🗑 Stale responses dropped: {stale}",
        "",
        "_Counters since the last restart._",
    ]
    return "\n".join(lines)


async def cmd_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show lookup metrics since last bot restart."""
    if not update.message:
        return
    await update.message.reply_text(_build_status_text(), parse_mode="Markdown")


def get_handlers():
    return [CommandHandler("status", cmd_status)]
