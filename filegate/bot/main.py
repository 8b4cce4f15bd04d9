"""
Telegram bot using aiogram 3.x
Source channel posts get a key; users get content by key behind the membership gate.
Vault calls are sync (DB + httpx) and run via asyncio.to_thread.
"""
import asyncio
import logging
import re
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from aiogram import Bot, Dispatcher, F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.storage.redis import RedisStorage
from aiogram.types import CallbackQuery, ErrorEvent, InlineKeyboardMarkup, Message
from sqlalchemy.orm import Session

from filegate.bot import texts
from filegate.bot.content import extract_content_meta
from filegate.core.config import settings
from filegate.core.errors import (
    ContentNotFoundError,
    DeliveryFailedError,
    GateError,
    KeyIssuanceError,
    NoPendingRequestError,
)
from filegate.core.logging import configure_logging
from filegate.db.init_db import init_db
from filegate.db.session import SessionLocal
from filegate.gate import CHECK_MEMBERSHIP_CALLBACK, build_join_markup, build_membership_text, get_gate_channels
from filegate.services.telegram.client import TelegramClient
from filegate.services.vault.factory import build_vault
from filegate.services.vault.service import VaultService
from filegate.utils.filesize import format_file_size
from filegate.workers.tasks.deletions import schedule_ticket

configure_logging()
logger = logging.getLogger("bot")

T = TypeVar("T")

KEY_RE = re.compile(r"^(get_)?[A-Za-z0-9_-]{4,64}$")

# Content is gated per requester, never delivered into shared chats
PRIVATE_CHAT = F.chat.type == "private"

# Shared sync client (httpx.Client is thread-safe)
telegram = TelegramClient()


# ===========================================
# Database session context manager
# ===========================================
@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.
    Handles commit on success and rollback on error.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def run_vault(action: Callable[[VaultService], T]) -> T:
    """Run one vault operation in its own DB session (called inside a worker thread)."""
    with get_db_session() as db:
        vault = build_vault(db, telegram=telegram, on_ticket_scheduled=schedule_ticket)
        return action(vault)


def parse_key(text: str | None) -> str | None:
    value = (text or "").strip()
    if not value or not KEY_RE.match(value):
        return None
    return value


def gate_markup(error: GateError) -> tuple[str, InlineKeyboardMarkup]:
    channels = get_gate_channels()
    text = build_membership_text(error.result, channels)
    markup = InlineKeyboardMarkup.model_validate(build_join_markup(error.result, channels))
    return text, markup


router = Router()


@router.channel_post(F.chat.id == settings.source_channel_id)
async def on_source_post(message: Message):
    """New post in the source channel -> key + caption annotation."""
    meta = extract_content_meta(message)
    if meta is None:
        return
    try:
        key = await asyncio.to_thread(run_vault, lambda vault: vault.on_new_post(meta))
        logger.info(
            f"source_post_processed: {meta.kind} {meta.display_name or ''} ({format_file_size(meta.size_bytes)})",
            extra={"source_post_id": meta.source_post_id, "key": key},
        )
    except KeyIssuanceError:
        logger.exception("source_post_key_issuance_failed", extra={"source_post_id": meta.source_post_id})
    except Exception:
        logger.exception("Error in on_source_post", extra={"source_post_id": meta.source_post_id})


async def handle_request(message: Message, raw_key: str) -> None:
    user_id = message.from_user.id
    try:
        await asyncio.to_thread(run_vault, lambda vault: vault.on_request(user_id, raw_key, user_id))
    except ContentNotFoundError:
        await message.answer(texts.NOT_FOUND_TEXT)
    except GateError as e:
        text, markup = gate_markup(e)
        await message.answer(text, reply_markup=markup, disable_web_page_preview=True)
    except DeliveryFailedError:
        await message.answer(texts.DELIVERY_FAILED_TEXT)
    except Exception:
        logger.exception("Error in handle_request", extra={"user_id": user_id})
        await message.answer(texts.ERROR_TEXT)


@router.message(CommandStart(), PRIVATE_CHAT)
async def cmd_start(message: Message, command: CommandObject):
    """Handle /start. Deep link: /start get_<key>."""
    key = parse_key(command.args)
    if key:
        await handle_request(message, key)
        return
    await message.answer(texts.WELCOME_TEXT, disable_web_page_preview=True)
    logger.info("start", extra={"user_id": message.from_user.id})


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(texts.HELP_TEXT)


@router.callback_query(F.data == CHECK_MEMBERSHIP_CALLBACK)
async def check_membership(callback: CallbackQuery):
    """Re-check membership and replay the pending request."""
    user_id = callback.from_user.id
    try:
        await asyncio.to_thread(run_vault, lambda vault: vault.on_recheck(user_id))
        await callback.answer(texts.RECHECK_DONE_ALERT)
    except GateError:
        await callback.answer(texts.RECHECK_NOT_MEMBER_ALERT, show_alert=True, cache_time=0)
    except NoPendingRequestError:
        await callback.answer(texts.RECHECK_DONE_ALERT)
        await callback.message.answer(texts.RECHECK_NOTHING_PENDING_TEXT)
    except ContentNotFoundError:
        await callback.answer()
        await callback.message.answer(texts.NOT_FOUND_TEXT)
    except DeliveryFailedError:
        await callback.answer(texts.DELIVERY_FAILED_TEXT, show_alert=True)
    except Exception:
        logger.exception("Error in check_membership", extra={"user_id": user_id})
        await callback.answer(texts.ERROR_TEXT, show_alert=True)


@router.message(PRIVATE_CHAT, F.text)
async def on_text(message: Message):
    """Plain text in private chat: treat as a key."""
    key = parse_key(message.text)
    if not key:
        await message.answer(texts.NOT_A_KEY_TEXT)
        return
    await handle_request(message, key)


async def on_error(event: ErrorEvent, *args, **kwargs):
    """Global error handler."""
    logger.exception(
        "Error in handler",
        extra={"error": str(event.exception)},
    )


async def main():
    """Start the bot."""
    logger.info("Starting bot...")

    bot = Bot(token=settings.telegram_bot_token)

    # Use Redis for FSM storage (persistent states)
    storage = RedisStorage.from_url(settings.redis_url)
    dp = Dispatcher(storage=storage)

    dp.errors.register(on_error)
    dp.include_router(router)

    # Delete webhook if exists (we use polling)
    await bot.delete_webhook(drop_pending_updates=True)

    logger.info("Bot started successfully!")

    try:
        init_db()
    except Exception:
        logger.exception("Failed to create tables on startup")

    try:
        await dp.start_polling(
            bot,
            allowed_updates=[
                "message",
                "channel_post",
                "callback_query",
            ],
        )
    finally:
        telegram.close()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
