import io
import os

from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image


def make_png(name='floorplan.png', noise_size=None, size=(64, 48)):
    """A real PNG upload; ``noise_size`` fills it with random pixels to make it large."""
    if noise_size:
        img = Image.frombytes('RGB', noise_size, os.urandom(noise_size[0] * noise_size[1] * 3))
    else:
        img = Image.new('RGB', size, (255, 255, 255))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


def make_oversized_jpeg(name='photo.jpg', megabytes=8):
    content = b'\xff\xd8\xff\xe0' + b'\0' * (megabytes * 1024 * 1024)
    return SimpleUploadedFile(name, content, content_type='image/jpeg')
