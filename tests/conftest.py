import io
import json

import numpy as np
import pytest
from PIL import Image

from spawnwatch.config import Settings


def image_bytes(color, size=(32, 24), mode="RGB", fmt="PNG"):
    """Encode a solid-colour image and return its bytes."""
    img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeTransport:
    """Records outgoing messages instead of talking to a chat platform."""

    def __init__(self):
        self.sent = []
        self.deleted = []
        self.fail_delete = False

    async def send(self, reply_to, message):
        self.sent.append((reply_to, message))
        return f"msg-{len(self.sent)}"

    async def delete(self, handle):
        if self.fail_delete:
            raise RuntimeError("message already gone")
        self.deleted.append(handle)


class FakeRenderer:
    def __init__(self):
        self.rendered = []

    def render(self, text):
        self.rendered.append(text)
        return b"PNG:" + text.encode()


@pytest.fixture
def encode_image():
    return image_bytes


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def catalog_dir(tmp_path):
    """
    Creates a small catalog directory: two solid images, a random-noise
    image, one corrupt file and one non-image file.
    """
    dataset_dir = tmp_path / "catalog"
    dataset_dir.mkdir()

    (dataset_dir / "Red.png").write_bytes(image_bytes((255, 0, 0)))
    (dataset_dir / "Blue.jpg").write_bytes(image_bytes((0, 0, 255), fmt="JPEG"))

    noise = np.random.default_rng(7).integers(0, 255, (40, 40, 3), dtype=np.uint8)
    Image.fromarray(noise).save(dataset_dir / "Noise.png")

    (dataset_dir / "Broken.png").write_bytes(b"definitely not an image")
    (dataset_dir / "readme.txt").write_text("ignored")

    return dataset_dir


@pytest.fixture
def settings(tmp_path, catalog_dir):
    return Settings(
        dataset_dir=catalog_dir,
        subscriptions_path=tmp_path / "subscriptions.json",
        source_author_id="spawner",
        scale=(8, 8),
        bot_user_id="42",
        text_only_contexts=frozenset({"quiet-guild"}),
        reply_ttl=None,
    )


@pytest.fixture
def config_file(tmp_path, catalog_dir):
    """Writes a configuration file using the original camelCase keys."""
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "botId": "spawner",
                "commonScale": {"width": 8, "height": 8},
                "datasetFolderPath": "catalog",
                "pingsFilePath": "pings.json",
                "specialServerIds": ["quiet-guild"],
            }
        )
    )
    return path
