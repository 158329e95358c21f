"""TelegramClient — event-driven transport via python-telegram-bot."""
import logging
import time
from typing import Awaitable, Callable, Optional

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes
from telegram.ext import MessageHandler as TGMessageHandler
from telegram.ext import filters

from infectoscan.bot_client import BotClient
from infectoscan.constants import (
    CMD_CLEAR,
    CMD_HELP,
    CMD_HISTORY,
    CMD_RESET,
    CMD_RETRY,
    CMD_SHOW,
    CMD_START,
    CMD_STATUS,
    MSG_ANALYSIS_FAILED,
    MSG_BLOCKED_CHAT,
    MSG_HELP,
    MSG_NOT_AN_IMAGE,
    MSG_SEND_FAIL,
    MSG_SEND_OK,
    SOURCE_TELEGRAM,
    TELEGRAM_MAX_MESSAGE_LENGTH,
    TELEGRAM_PHOTO_MIME_TYPE,
)
from infectoscan.models import CapturedImage
from infectoscan.router import Reply, TriageRouter
from infectoscan.telegram.typing import typing

logger = logging.getLogger(__name__)

OnImage = Callable[[str, CapturedImage], Awaitable[str]]


def normalize_chat_id(s: str) -> str:
    return "".join(c for c in s if c.isdigit() or c == "-")


def split_message(text: str, limit: int = TELEGRAM_MAX_MESSAGE_LENGTH) -> list[str]:
    """Split on line boundaries so each piece fits in one Telegram message."""
    chunks: list[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        pieces = [line[i:i + limit] for i in range(0, len(line), limit)]
        for piece in pieces:
            match len(current) + len(piece) > limit:
                case True:
                    chunks.append(current)
                    current = piece
                case False:
                    current += piece
    return [c.rstrip("\n") for c in chunks + [current] if c.strip()]


class TelegramClient(BotClient):

    def __init__(self, token: str, allowed_chat_id: str) -> None:
        self._token = token
        self._allowed_chat_id = allowed_chat_id
        self._app: Optional[Application] = None

    # ── BotClient interface ───────────────────────────────────────────────────

    def run(self, router: TriageRouter) -> None:
        # Concurrent updates so /reset and the busy reply work during an analysis.
        self._app = Application.builder().token(self._token).concurrent_updates(True).build()
        self._app.add_handler(
            TGMessageHandler(filters.PHOTO | filters.Document.IMAGE, self._make_image_handler(router.handle_image))
        )
        self._app.add_handler(
            TGMessageHandler(filters.Document.ALL & ~filters.Document.IMAGE, self._make_reply_handler(MSG_NOT_AN_IMAGE))
        )
        self._app.add_handler(CommandHandler(CMD_RETRY, self._make_retry_handler(router.handle_retry_command)))
        self._app.add_handler(CommandHandler(CMD_RESET, self._make_sender_handler(router.handle_reset_command)))
        self._app.add_handler(CommandHandler(CMD_HISTORY, self._make_sender_handler(router.handle_history_command)))
        self._app.add_handler(CommandHandler(CMD_CLEAR, self._make_sender_handler(router.handle_clear_command)))
        self._app.add_handler(CommandHandler(CMD_SHOW, self._make_show_handler(router.handle_show_command)))
        self._app.add_handler(
            CommandHandler(CMD_STATUS, self._make_sender_handler(lambda _: router.handle_status_command()))
        )
        self._app.add_handler(CommandHandler((CMD_HELP, CMD_START), self._make_reply_handler(MSG_HELP)))
        self._app.run_polling()

    async def send_message(self, to: str, text: str) -> bool:
        match self._app:
            case None:
                logger.error("send_message called before run()")
                return False
            case app:
                try:
                    for chunk in split_message(text):
                        await app.bot.send_message(chat_id=int(to), text=chunk)
                    return True
                except Exception as exc:
                    logger.error("Telegram send_message failed: %s", exc)
                    return False

    async def send_photo(self, to: str, photo: bytes) -> bool:
        match self._app:
            case None:
                logger.error("send_photo called before run()")
                return False
            case app:
                try:
                    await app.bot.send_photo(chat_id=int(to), photo=photo)
                    return True
                except Exception as exc:
                    logger.error("Telegram send_photo failed: %s", exc)
                    return False

    # ── helpers (also used in tests) ─────────────────────────────────────────

    def _is_allowed(self, update: Update) -> bool:
        if update.effective_chat is None:
            return False
        incoming = normalize_chat_id(str(update.effective_chat.id))
        allowed = normalize_chat_id(self._allowed_chat_id)
        return incoming == allowed

    def _sender(self, update: Update) -> Optional[str]:
        """Chat id of an allowed update, None (and a log line) otherwise."""
        match self._is_allowed(update):
            case False:
                chat_id = update.effective_chat.id if update.effective_chat else "?"
                logger.warning(MSG_BLOCKED_CHAT, chat_id)
                return None
            case True:
                return str(update.effective_chat.id)

    @staticmethod
    async def _download_image(update: Update) -> Optional[CapturedImage]:
        """Largest photo size, or an image document with its declared MIME type."""
        msg = update.message
        if msg is None:
            return None
        match (msg.photo, msg.document):
            case ([*_, largest], _):
                source, mime_type = largest, TELEGRAM_PHOTO_MIME_TYPE
            case (_, doc) if doc is not None and (doc.mime_type or "").startswith("image/"):
                source, mime_type = doc, doc.mime_type
            case _:
                return None
        tg_file = await source.get_file()
        data = bytes(await tg_file.download_as_bytearray())
        return CapturedImage(data=data, mime_type=mime_type, source=SOURCE_TELEGRAM)

    # ── internal handler factory ──────────────────────────────────────────────

    def _make_reply_handler(self, text: str) -> Callable:
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._sender(update):
                case None:
                    return
                case sender:
                    await self.send_message(sender, text)

        return _handler

    def _make_sender_handler(self, callback: Callable[[str], str]) -> Callable:
        """Handler for commands that pass the sender ID to the callback."""
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._sender(update):
                case None:
                    return
                case sender:
                    await self.send_message(sender, callback(sender))

        return _handler

    def _make_show_handler(self, callback: Callable[[str, str], Reply]) -> Callable:
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._sender(update):
                case None:
                    return
                case sender:
                    pass
            reply = callback(sender, " ".join(context.args or []))
            match reply.photo:
                case None:
                    pass
                case photo:
                    await self.send_photo(sender, photo)
            await self.send_message(sender, reply.text)

        return _handler

    def _make_retry_handler(self, callback: Callable[[str], Awaitable[str]]) -> Callable:
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._sender(update):
                case None:
                    return
                case sender:
                    await self._process(sender, context.bot, lambda: callback(sender))

        return _handler

    def _make_image_handler(self, on_image: OnImage) -> Callable:
        async def _handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            match self._sender(update):
                case None:
                    return
                case sender:
                    pass
            try:
                image = await self._download_image(update)
            except Exception:
                logger.exception("Image download failed")
                await self.send_message(sender, MSG_ANALYSIS_FAILED)
                return
            match image:
                case None:
                    await self.send_message(sender, MSG_NOT_AN_IMAGE)
                case img:
                    await self._process(sender, context.bot, lambda: on_image(sender, img))

        return _handler

    async def _process(self, sender: str, bot, call: Callable[[], Awaitable[str]]) -> None:
        start = time.time()
        async with typing(bot, sender):
            response = await call()

        elapsed = time.time() - start
        match response.strip() if response else "":
            case "":
                logger.info("No reply for %s (result discarded)", sender)
            case text:
                success = await self.send_message(sender, text)
                match success:
                    case True:
                        logger.info(MSG_SEND_OK, elapsed)
                    case False:
                        logger.error(MSG_SEND_FAIL, elapsed)
