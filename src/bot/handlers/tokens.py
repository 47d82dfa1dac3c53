import logging

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InlineQueryResultArticle,
    InlineQueryResultsButton,
    InputTextMessageContent,
    Update,
)
from telegram.error import BadRequest
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes, InlineQueryHandler
from telegram.helpers import escape_markdown

from src.api.errors import DecodeError, HttpStatusError, NetworkError
from src.api.mochi import MochiClient
from src.api.models import TickerSummary, TokenDetail
from src.bot.sessions import SessionStore
from src.config import lookup_config, settings
from src.lookup.controller import RequestState
from src.lookup.formatting import (
    coingecko_url,
    render_detail,
    summary_text,
    ticker_subtitle,
    ticker_title,
)
from src.metrics import lookups_total

logger = logging.getLogger(__name__)

_source = MochiClient(settings.api_base_url, timeout=settings.request_timeout)
_lookup = lookup_config()
_sessions = SessionStore(
    _source,
    debounce_delay=_lookup["debounce_delay"],
    max_results=_lookup["max_results"],
    idle_seconds=_lookup["session_idle_seconds"],
)

EMPTY_HINT = "Give query parameter to search"
ERROR_HINT = "Search failed, keep typing to retry"
CALLBACK_PREFIX = "token:"
MAX_CALLBACK_BYTES = 64


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, HttpStatusError):
        return f"the token API answered HTTP {exc.status_code}"
    if isinstance(exc, NetworkError):
        return "the token API could not be reached"
    if isinstance(exc, DecodeError):
        return "the token API sent an unexpected response"
    return str(exc) or type(exc).__name__


def _coingecko_markup(token_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("Open in CoinGecko", url=coingecko_url(token_id))]])


def _results_keyboard(results: list[TickerSummary]) -> InlineKeyboardMarkup:
    rows = []
    for ticker in results:
        data = f"{CALLBACK_PREFIX}{ticker.id}"
        if len(data.encode()) > MAX_CALLBACK_BYTES:
            logger.debug(f"ticker id too long for a button: {ticker.id!r}")
            continue
        rows.append([InlineKeyboardButton(summary_text(ticker), callback_data=data)])
    return InlineKeyboardMarkup(rows)


def _code(text: str) -> str:
    # Markdown v1 has no escape inside a code span
    return "`" + text.replace("`", "'") + "`"


def _format_results(query: str, results: list[TickerSummary]) -> str:
    lines = [f'🔍 *"{escape_markdown(query)}"*', ""]
    for ticker in results:
        lines.append(f"  {escape_markdown(ticker_title(ticker))} — {_code(ticker_subtitle(ticker))}")
    lines += ["", "Tap a token to see its details."]
    return "\n".join(lines)


def _plain_results(query: str, results: list[TickerSummary]) -> str:
    lines = [f'🔍 "{query}"', ""]
    lines += [f"  {summary_text(ticker)}" for ticker in results]
    lines += ["", "Tap a token to see its details."]
    return "\n".join(lines)


def _article(ticker: TickerSummary, state: RequestState[TokenDetail] | None) -> InlineQueryResultArticle:
    detail = state.data if state is not None else None
    text = render_detail(detail) if detail is not None else summary_text(ticker)
    return InlineQueryResultArticle(
        id=ticker.id[:64],
        title=ticker_title(ticker),
        description=ticker_subtitle(ticker),
        input_message_content=InputTextMessageContent(text),
        reply_markup=_coingecko_markup(ticker.id),
        thumbnail_url=detail.thumb if detail is not None else None,
    )


async def cmd_token(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not context.args:
        await update.message.reply_text("Usage: /token <symbol or name>\nExample: /token bit")
        return

    query = " ".join(context.args)
    session = _sessions.get(update.effective_user.id)
    msg = await update.message.reply_text(f"⏳ Searching {query}...")
    state = await session.submit(query)

    if state.error is not None:
        lookups_total.labels(kind="command", result="error").inc()
        await msg.edit_text(f"❌ Search failed: {_describe_error(state.error)}.")
        return

    results = session.results
    if not results:
        lookups_total.labels(kind="command", result="empty").inc()
        await msg.edit_text(EMPTY_HINT)
        return

    lookups_total.labels(kind="command", result="ok").inc()
    query = session.search_controller.key
    markup = _results_keyboard(results)
    try:
        await msg.edit_text(_format_results(query, results), parse_mode="Markdown", reply_markup=markup)
    except BadRequest as exc:
        # a name or symbol Telegram cannot parse as Markdown
        logger.warning(f"Markdown results for {query!r} rejected: {exc}")
        await msg.edit_text(_plain_results(query, results), reply_markup=markup)


async def handle_token_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    if not query.data or not query.data.startswith(CALLBACK_PREFIX):
        return
    token_id = query.data[len(CALLBACK_PREFIX):]
    if not token_id:
        return

    session = _sessions.get(query.from_user.id)
    state = await session.detail(token_id, retry=True)

    if state.error is not None:
        lookups_total.labels(kind="detail", result="error").inc()
        await query.message.reply_text(f"❌ Could not load {token_id}: {_describe_error(state.error)}.")
        return
    if state.data is None:
        # row was torn down while loading
        return

    lookups_total.labels(kind="detail", result="ok").inc()
    await query.message.reply_text(render_detail(state.data), reply_markup=_coingecko_markup(token_id))


async def inline_token_search(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    inline = update.inline_query
    session = _sessions.get(inline.from_user.id)
    state = await session.search(inline.query)
    if state is None:
        return  # a newer keystroke took over

    if state.error is not None:
        lookups_total.labels(kind="inline", result="error").inc()
        results = []
    else:
        tickers = session.results
        details = await session.details(t.id for t in tickers)
        results = [_article(t, details.get(t.id)) for t in tickers]
        lookups_total.labels(kind="inline", result="ok" if results else "empty").inc()

    button = None
    if state.error is not None:
        button = InlineQueryResultsButton(text=ERROR_HINT, start_parameter="help")
    elif not results:
        button = InlineQueryResultsButton(text=EMPTY_HINT, start_parameter="help")
    try:
        await inline.answer(results, cache_time=0, is_personal=True, button=button)
    except BadRequest as exc:
        # query expired while the details were loading
        logger.warning(f"inline answer for {inline.query!r} rejected: {exc}")


async def shutdown() -> None:
    _sessions.close_all()
    await _source.aclose()


def get_handlers():
    return [
        CommandHandler("token", cmd_token),
        CallbackQueryHandler(handle_token_callback, pattern=f"^{CALLBACK_PREFIX}"),
        InlineQueryHandler(inline_token_search),
    ]
