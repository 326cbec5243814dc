import logging
import time
from urllib.parse import unquote, urlparse

from django.core.files.storage import default_storage
from PIL import Image, UnidentifiedImageError

from .exceptions import InvalidRecord

logger = logging.getLogger(__name__)

IMAGE_DIR = 'kiosk-images'
ALLOWED_CONTENT_TYPES = ['image/jpeg', 'image/png', 'image/webp']
FORMAT_EXTENSIONS = {'JPEG': 'jpg', 'PNG': 'png', 'WEBP': 'webp'}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

UNSUPPORTED_TYPE_MESSAGE = '지원되지 않는 파일 형식입니다. JPG, PNG, WebP 파일만 업로드 가능합니다.'
TOO_LARGE_MESSAGE = '파일 크기가 너무 큽니다. 5MB 이하의 파일만 업로드 가능합니다.'


class InvalidImage(InvalidRecord):
    pass


def validate_image_file(file):
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidImage(UNSUPPORTED_TYPE_MESSAGE)
    if file.size > MAX_IMAGE_SIZE:
        raise InvalidImage(TOO_LARGE_MESSAGE)
    # The declared content type comes from the client; check the bytes as well.
    try:
        with Image.open(file) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError):
        raise InvalidImage(UNSUPPORTED_TYPE_MESSAGE)
    finally:
        file.seek(0)
    if image_format not in FORMAT_EXTENSIONS:
        raise InvalidImage(UNSUPPORTED_TYPE_MESSAGE)
    return image_format


def generate_image_filename(room_id, image_format: str) -> str:
    # From the detected format, never the client's file name.
    extension = FORMAT_EXTENSIONS[image_format]
    timestamp = int(time.time() * 1000)
    return f"room-{room_id}-{timestamp}.{extension}"


def upload_image(file, filename: str) -> str:
    name = default_storage.save(f"{IMAGE_DIR}/{filename}", file)
    url = default_storage.url(name)
    logger.info(f"Stored room image {name} at {url}")
    return url


def delete_image(url: str) -> None:
    path = unquote(urlparse(url).path)
    marker = f"/{IMAGE_DIR}/"
    if marker not in path:
        logger.warning(f"Not a kiosk image, skipping delete: {url}")
        return
    name = IMAGE_DIR + '/' + path.split(marker, 1)[1]
    if default_storage.exists(name):
        default_storage.delete(name)
        logger.info(f"Deleted room image {name}")
