"""
Основной модуль бота - Event Router + UI Adapter
"""
import logging
from typing import List, Optional

import aiohttp
from aiogram import Bot, Dispatcher, Router, F, types
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup

from outsaver.bot.confirmation import (
    ACCEPT,
    REJECT,
    NOT_AUTHOR,
    RESOLVED,
    ConfirmationGate
)
from outsaver.config import Config
from outsaver.downloader.downloader import MediaDownloader
from outsaver.exceptions import AuthError, ConfigurationError, LogoutError, SessionStateError
from outsaver.models.upload_batch import UploadBatch
from outsaver.models.upload_result import PerItemResult
from outsaver.services.outplayed import OutplayedService
from outsaver.storage.storage_session import StorageSession
from outsaver.use_cases import MoveVideosUseCase, UploadPipeline
from outsaver.utils.utils import OUTPLAYED_URL_PREFIX, extract_links

logger = logging.getLogger(__name__)

router = Router()

CONFIRM_YES = "confirm:yes"
CONFIRM_NO = "confirm:no"


# ========== UI Adapter Methods ==========

def confirmation_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[
            InlineKeyboardButton(text="✅", callback_data=CONFIRM_YES),
            InlineKeyboardButton(text="❌", callback_data=CONFIRM_NO)
        ]]
    )


def author_display_name(user: Optional[types.User]) -> str:
    """Имя автора для имени файла: username, иначе полное имя"""
    if user is None:
        return "unknown"
    return user.username or user.full_name


def format_report(results: List[PerItemResult]) -> str:
    """Отчёт по пакету для чата"""
    uploaded = [result for result in results if result.is_uploaded()]
    lines = [f"📦 Загружено {len(uploaded)} из {len(results)}"]
    for result in results:
        if result.is_uploaded():
            lines.append(f"✅ {result.filename}")
        else:
            lines.append(f"❌ {result.url}\n    {result.reason}")
    return "\n".join(lines)


def parse_names(args: Optional[str]) -> List[str]:
    """Имена файлов из аргументов команды: через ';' или с новой строки"""
    if not args:
        return []
    raw = args.replace('\n', ';').split(';')
    return [name.strip() for name in raw if name.strip()]


async def remove_keyboard(message: types.Message):
    try:
        await message.edit_reply_markup(reply_markup=None)
    except TelegramBadRequest:
        pass


# ========== Event Handlers ==========

@router.message(Command("start"))
async def start_handler(message: types.Message):
    """Обработка команды /start"""
    await message.answer(
        "👋 Привет! Пришли в чат ссылку на клип outplayed.tv - "
        "я спрошу автора и сохраню видео в MEGA.\n\n"
        "/move имя1; имя2 - перенести файлы в архивную папку"
    )


@router.message(Command("move"))
async def move_handler(
    message: types.Message,
    command: CommandObject,
    mover: MoveVideosUseCase,
    config: Config
):
    """Обработка команды /move: перенос файлов в архивную папку MEGA"""
    if not config.mega.archive_node:
        await message.answer("❌ Архивная папка не настроена (MEGA_ARCHIVE_NODE)")
        return

    names = parse_names(command.args)
    if not names:
        await message.answer("Использование: /move имя1; имя2")
        return

    try:
        result = await mover.execute(names, config.mega.archive_node)
    except SessionStateError as e:
        logger.error(f"[bot] ❌ {e}")
        await message.answer("❌ Сессия MEGA недоступна")
        return

    lines = [f"📁 Перемещено: {len(result['moved'])}"]
    if result['not_found']:
        lines.append("Не найдены: " + ", ".join(result['not_found']))
    for name, reason in result['failed']:
        lines.append(f"❌ {name}: {reason}")
    await message.answer("\n".join(lines))


@router.message(F.text.contains(OUTPLAYED_URL_PREFIX))
async def outplayed_message_handler(
    message: types.Message,
    pipeline: UploadPipeline,
    gate: ConfirmationGate,
    config: Config
):
    """Сообщение со ссылками outplayed.tv: спросить автора и загрузить"""
    urls = [url for url in extract_links(message.text) if pipeline.extractor.can_handle(url)]
    if not urls or message.from_user is None:
        return

    logger.info(f"[bot] {len(urls)} ссылок от {author_display_name(message.from_user)} в чате {message.chat.id}")
    confirmation = await message.reply(
        f"🎬 Нашёл {len(urls)} видео с outplayed. Сохранить?",
        reply_markup=confirmation_keyboard()
    )

    key = (confirmation.chat.id, confirmation.message_id)
    decision = await gate.wait(key, message.from_user.id, config.confirmation_timeout)

    if decision == ACCEPT:
        await message.reply("🚀 Поехали! Загружаю в MEGA...")
        batch = UploadBatch(
            urls=urls,
            author=author_display_name(message.from_user),
            destination_handle=config.mega.destination_node
        )
        try:
            results = await pipeline.run(batch)
        except Exception as e:
            logger.error(f"[bot] Ошибка при обработке пакета: {e}", exc_info=True)
            await message.reply("❌ Произошла ошибка при загрузке. Попробуй позже.")
            return
        await message.reply(format_report(results))
    elif decision == REJECT:
        await message.reply("👌 Хорошо, ничего не загружаю")
    else:
        await remove_keyboard(confirmation)


@router.callback_query(F.data.in_({CONFIRM_YES, CONFIRM_NO}))
async def confirmation_callback_handler(callback: CallbackQuery, gate: ConfirmationGate):
    """Нажатие ✅ / ❌ под запросом подтверждения"""
    if callback.message is None:
        await callback.answer()
        return

    decision = ACCEPT if callback.data == CONFIRM_YES else REJECT
    key = (callback.message.chat.id, callback.message.message_id)
    outcome = gate.resolve(key, callback.from_user.id, decision)

    if outcome == RESOLVED:
        await callback.answer()
        if isinstance(callback.message, types.Message):
            await remove_keyboard(callback.message)
    elif outcome == NOT_AUTHOR:
        await callback.answer("Подтвердить может только автор сообщения")
    else:
        await callback.answer("⌛ Время на подтверждение вышло")


# ========== Startup ==========

def build_dispatcher() -> Dispatcher:
    dp = Dispatcher()
    dp.include_router(router)
    return dp


async def main():
    """
    Запуск бота

    Порядок: конфигурация -> HTTP-сессия -> вход в MEGA -> polling.
    Ошибка конфигурации или входа в MEGA останавливает процесс.
    """
    try:
        config = Config.load()
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        raise SystemExit(1)

    timeout = aiohttp.ClientTimeout(total=None, sock_connect=30, sock_read=600)
    async with aiohttp.ClientSession(timeout=timeout) as http:
        storage = StorageSession(http)
        try:
            await storage.login(config.mega.email, config.mega.password)
        except AuthError as e:
            logger.error(f"❌ {e}")
            raise SystemExit(1)

        pipeline = UploadPipeline(OutplayedService(http), MediaDownloader(http), storage)
        bot = Bot(token=config.telegram.token, session=AiohttpSession(timeout=600))
        dp = build_dispatcher()

        logger.info("Бот запущен!")
        logger.info("Ожидаю обновления...")
        try:
            await dp.start_polling(
                bot,
                pipeline=pipeline,
                mover=MoveVideosUseCase(storage),
                gate=ConfirmationGate(),
                config=config
            )
        finally:
            try:
                await storage.logout()
            except LogoutError as e:
                logger.warning(f"⚠️ {e}")
            await bot.session.close()
            logger.info("Бот остановлен")
