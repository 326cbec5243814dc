import os
import logging
import tempfile
from pathlib import Path
from urllib.parse import unquote, urlparse

import django
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, InputFile, Update
from telegram.ext import (
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'kioskconsole.settings')
django.setup()
from django.conf import settings
from PIL import Image, ImageDraw

from kiosk.cache import REFRESH_INTERVAL_SECONDS, KioskCache
from kiosk.fetchers import HttpSnapshotFetcher, LocalSnapshotFetcher

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = '안녕하세요! 방문하실 건물을 선택하거나 찾으시는 공간 이름을 입력해 주세요.'
LOAD_FAILED_MESSAGE = '데이터를 불러오지 못했습니다. 잠시 후 다시 시도해 주세요.'
EMPTY_MESSAGE = '등록된 건물이 없습니다.'
NOT_FOUND_MESSAGE = '해당 정보를 찾을 수 없습니다.'
MAX_SEARCH_RESULTS = 10
MARKER_RADIUS = 12


def building_keyboard(buildings) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(b['name'], callback_data=f"building:{b['id']}")] for b in buildings
    ])


def floor_keyboard(building) -> InlineKeyboardMarkup:
    # Top floor first, like a building directory
    floors = sorted(building['floors'], key=lambda f: f['floor_number'], reverse=True)
    rows = [
        [InlineKeyboardButton(f"{f['floor_number']}F {f['name']} ({len(f['rooms'])})",
                              callback_data=f"floor:{f['id']}")]
        for f in floors
    ]
    rows.append([InlineKeyboardButton('← 건물 목록', callback_data='home')])
    return InlineKeyboardMarkup(rows)


def room_keyboard(floor, building) -> InlineKeyboardMarkup:
    rows = [[InlineKeyboardButton(r['name'], callback_data=f"room:{r['id']}")] for r in floor['rooms']]
    rows.append([InlineKeyboardButton(f"← {building['name']}", callback_data=f"building:{building['id']}")])
    return InlineKeyboardMarkup(rows)


def describe_floor(floor, building, connections) -> str:
    lines = [f"{building['name']} {floor['floor_number']}층 - {floor['name']}"]
    if floor.get('description'):
        lines.append(floor['description'])
    lines.append(f"📍 {len(floor['rooms'])}개의 공간")
    for c in connections:
        if str(c['floor1_id']) == str(floor['id']):
            lines.append(f"🔗 {c['name']}: {c['building2_name']} {c['floor2_name']}(으)로 연결")
        else:
            lines.append(f"🔗 {c['name']}: {c['building1_name']} {c['floor1_name']}(으)로 연결")
    return '\n'.join(lines)


def describe_room(room, floor, building) -> str:
    text = f"{room['name']}\n{building['name']} {floor['floor_number']}층 ({floor['name']})"
    if room.get('description'):
        text += f"\n\n{room['description']}"
    return text


def local_image_path(image_url: str) -> Path | None:
    path = unquote(urlparse(image_url).path)
    if not path.startswith(settings.MEDIA_URL):
        return None
    return Path(settings.MEDIA_ROOT) / path[len(settings.MEDIA_URL):]


def mark_room_on_image(image_path: Path, x: int, y: int) -> Path:
    output_dir = Path(tempfile.gettempdir()) / 'kiosk'
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"marked_{image_path.stem}_{x}_{y}.png"
    img = Image.open(image_path).convert("RGBA")
    draw = ImageDraw.Draw(img)
    r = MARKER_RADIUS
    draw.ellipse((x - r, y - r, x + r, y + r), fill=(255, 0, 0, 255))
    img.save(output_path)
    logger.debug(f"Marked ({x}, {y}) on {image_path}")
    return output_path


def room_photo(room):
    """A local file or a URL Telegram can show for the room, or None."""
    image_url = room.get('image_url')
    if not image_url:
        return None
    path = local_image_path(image_url)
    if path is not None and path.exists():
        if room.get('position_x') is not None and room.get('position_y') is not None:
            return mark_room_on_image(path, room['position_x'], room['position_y'])
        return path
    if image_url.startswith(('http://', 'https://')):
        return image_url
    logger.warning(f"Image not found: {image_url}")
    return None


def unavailable_message(cache) -> str | None:
    state = cache.state
    if state.buildings:
        return None
    return LOAD_FAILED_MESSAGE if state.error else EMPTY_MESSAGE


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    logger.debug("Start command received")
    cache = context.bot_data['cache']
    message = unavailable_message(cache)
    if message:
        await update.message.reply_text(message)
        return
    await update.message.reply_text(WELCOME_MESSAGE, reply_markup=building_keyboard(cache.state.buildings))


async def refresh_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    cache = context.bot_data['cache']
    if await cache.refresh():
        await update.message.reply_text(f"새로고침 완료: 건물 {len(cache.state.buildings)}개")
    else:
        await update.message.reply_text(LOAD_FAILED_MESSAGE)


async def send_room(query, cache, room_id):
    room = cache.get_room(room_id)
    if room is None:
        await query.edit_message_text(NOT_FOUND_MESSAGE)
        return
    floor = cache.get_floor(room['floor_id'])
    building = cache.find_building_of_floor(floor['id'])
    caption = describe_room(room, floor, building)
    keyboard = InlineKeyboardMarkup([
        [InlineKeyboardButton(f"← {floor['floor_number']}F {floor['name']}", callback_data=f"floor:{floor['id']}")]
    ])
    photo = room_photo(room)
    if photo is None:
        await query.edit_message_text(caption, reply_markup=keyboard)
    elif isinstance(photo, Path):
        logger.info(f"Sending photo: {photo}")
        with open(photo, 'rb') as image_file:
            await query.message.reply_photo(photo=InputFile(image_file), caption=caption, reply_markup=keyboard)
    else:
        await query.message.reply_photo(photo=photo, caption=caption, reply_markup=keyboard)


async def handle_button(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    cache = context.bot_data['cache']
    kind, _, item_id = query.data.partition(':')
    logger.debug(f"Button pressed: {query.data}")

    if kind == 'home':
        message = unavailable_message(cache)
        if message:
            await query.edit_message_text(message)
        else:
            await query.edit_message_text(WELCOME_MESSAGE, reply_markup=building_keyboard(cache.state.buildings))
    elif kind == 'building':
        building = cache.get_building(item_id)
        if building is None:
            await query.edit_message_text(NOT_FOUND_MESSAGE)
            return
        text = building['name']
        if building.get('description'):
            text += f"\n{building['description']}"
        await query.edit_message_text(text, reply_markup=floor_keyboard(building))
    elif kind == 'floor':
        floor = cache.get_floor(item_id)
        if floor is None:
            await query.edit_message_text(NOT_FOUND_MESSAGE)
            return
        building = cache.find_building_of_floor(item_id)
        text = describe_floor(floor, building, cache.connections_of_floor(item_id))
        await query.edit_message_text(text, reply_markup=room_keyboard(floor, building))
    elif kind == 'room':
        await send_room(query, cache, item_id)
    else:
        logger.warning(f"Unknown callback data: {query.data}")


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    text = update.message.text.strip()
    logger.debug(f"Received message: {text}")
    cache = context.bot_data['cache']
    message = unavailable_message(cache)
    if message:
        await update.message.reply_text(message)
        return
    matches = cache.search_rooms(text)
    if not matches:
        await update.message.reply_text(f"'{text}'에 해당하는 공간을 찾지 못했습니다.")
        return
    keyboard = InlineKeyboardMarkup([
        [InlineKeyboardButton(f"{room['name']} · {building['name']} {floor['floor_number']}F",
                              callback_data=f"room:{room['id']}")]
        for building, floor, room in matches[:MAX_SEARCH_RESULTS]
    ])
    await update.message.reply_text(f"검색 결과 {len(matches)}건", reply_markup=keyboard)


def build_cache() -> KioskCache:
    # Without KIOSK_DATA_URL the bot reads the configured store in-process.
    url = os.environ.get('KIOSK_DATA_URL')
    fetch = HttpSnapshotFetcher(url) if url else LocalSnapshotFetcher()
    interval = float(os.environ.get('KIOSK_REFRESH_SECONDS', REFRESH_INTERVAL_SECONDS))
    return KioskCache(fetch, interval=interval)


async def post_init(application):
    application.bot_data['cache'].start()


async def post_shutdown(application):
    await application.bot_data['cache'].stop()


if __name__ == '__main__':
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'))
    token = os.environ.get('TELEGRAM_BOT_TOKEN')
    if not token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")
    app = ApplicationBuilder().token(token).post_init(post_init).post_shutdown(post_shutdown).build()
    app.bot_data['cache'] = build_cache()
    app.add_handler(CommandHandler('start', start))
    app.add_handler(CommandHandler('refresh', refresh_command))
    app.add_handler(CallbackQueryHandler(handle_button))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    logger.info("Kiosk bot started")
    app.run_polling()
