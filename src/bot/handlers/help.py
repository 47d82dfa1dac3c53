import logging

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler, MessageHandler, filters

logger = logging.getLogger(__name__)

# (command, args_hint, description)
# Use "" for args_hint when command takes no arguments.
COMMAND_LIST = [
    # --- Search ---
    ("__header__", "", "🔍 *Search*"),
    ("token", "symbol|name", "Search tokens and pick one to see its details"),

    # --- Bot ---
    ("__header__", "", "🛠 *Bot*"),
    ("start", "", "Welcome message"),
    ("status", "", "Lookup counters since the last restart"),
    ("help", "", "This list"),
]

INLINE_HINT = "💡 In any chat, type `@<bot> bit` to search as you type."


def _build_help_text() -> str:
    lines = [
        "🪙 *TokenBot — available commands*",
        "",
        INLINE_HINT,
    ]
    for cmd, args, desc in COMMAND_LIST:
        if cmd == "__header__":
            lines += ["", desc]
        elif args:
            lines.append(f"`/{cmd} {args}` — {desc}")
        else:
            lines.append(f"`/{cmd}` — {desc}")
    return "\n".join(lines)


_HELP_TEXT = _build_help_text()


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    first_name = update.effective_user.first_name if update.effective_user else ""
    await update.message.reply_text(
        f"Hi {first_name}! 🪙 I look up crypto tokens.\n\n{_HELP_TEXT}",
        parse_mode="Markdown",
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    await update.message.reply_text(_HELP_TEXT, parse_mode="Markdown")


async def cmd_unknown(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.message:
        return
    raw = update.message.text or ""
    token = raw.split()[0] if raw.split() else "unknown"
    cmd = token.split("@")[0]  # strip @botname suffix for group chats
    await update.message.reply_text(
        f"❓ Unknown command: `{cmd}`\n\n{_HELP_TEXT}",
        parse_mode="Markdown",
    )


def get_handlers():
    return [
        CommandHandler("start", cmd_start),
        CommandHandler("help", cmd_help),
        MessageHandler(filters.COMMAND, cmd_unknown),
    ]
