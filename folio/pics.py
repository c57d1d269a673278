"""Pictures page backed by an Immich album, with a file-existence-checked cache."""

from __future__ import annotations

import io
import logging
import subprocess
from contextlib import nullcontext
from pathlib import Path, PurePosixPath
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .config import Config
from .output import OutputError, SectionResult, ensure_directory, write_text
from .remote import FetchError, create_client, get_bytes, get_json
from .templates import PageRenderer

logger = logging.getLogger(__name__)


class ImageConversionError(FetchError):
    """Raised when a downloaded photo cannot be converted to WebP."""


class Photo(BaseModel):
    """A converted photo ready to be referenced from the pictures page."""

    image_path: str = Field(description="Site-absolute URL of the converted image.")
    caption: str = ""
    filename: str = ""


class ImmichExif(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None


class ImmichAsset(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    original_file_name: str = Field(default="", alias="originalFileName")
    exif_info: Optional[ImmichExif] = Field(default=None, alias="exifInfo")


class ImmichAlbum(BaseModel):
    model_config = ConfigDict(extra="ignore")

    assets: list[ImmichAsset] = Field(default_factory=list)


_PHOTO_LIST = TypeAdapter(list[Photo])


def album_cache_path(cache_dir: Path, album_id: str) -> Path:
    return cache_dir / "immich" / f"{album_id}.json"


def load_cached_album(cache_dir: Path, album_id: str) -> list[Photo] | None:
    path = album_cache_path(cache_dir, album_id)
    if not path.exists():
        logger.debug("No cached metadata for album %s", album_id)
        return None
    try:
        return _PHOTO_LIST.validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        logger.warning("Ignoring unreadable album cache %s: %s", path, exc)
        return None


def cached_album_is_complete(photos: list[Photo], output_root: Path) -> bool:
    """True when every cached photo's image file exists under ``output_root``."""
    return all((output_root / photo.image_path.lstrip("/")).is_file() for photo in photos)


def save_album_cache(cache_dir: Path, album_id: str, photos: list[Photo]) -> Path:
    payload = _PHOTO_LIST.dump_json(photos, indent=2).decode("utf-8")
    return write_text(album_cache_path(cache_dir, album_id), payload + "\n")


def fetch_album(
    *,
    immich_url: str,
    album_id: str,
    api_key: str,
    output_root: Path,
    cache_dir: Path,
    client: httpx.Client,
    images_subdir: str = "static/pics",
    quality: int = 85,
) -> list[Photo]:
    """Return the album's photos, downloading and converting them when needed.

    The cached photo list is used only when every image it names is present
    in the output tree; otherwise the whole album is fetched again.
    """
    cached = load_cached_album(cache_dir, album_id)
    if cached is not None:
        if cached_album_is_complete(cached, output_root):
            logger.info("Using %d cached photos for album %s", len(cached), album_id)
            return cached
        logger.warning("Cached images for album %s are missing; fetching again", album_id)

    headers = {"x-api-key": api_key}
    payload = get_json(client, f"{immich_url}/api/albums/{album_id}", headers=headers)
    try:
        album = ImmichAlbum.model_validate(payload)
    except ValidationError as exc:
        raise FetchError(f"Unexpected Immich album response for {album_id}: {exc}") from exc
    logger.info("Fetched %d assets from album %s", len(album.assets), album_id)

    images_dir = ensure_directory(output_root / images_subdir)
    photos: list[Photo] = []
    for asset in album.assets:
        stem = PurePosixPath(asset.original_file_name).stem or asset.id
        filename = f"{stem}.webp"
        destination = images_dir / filename
        if destination.exists():
            logger.debug("Image already converted: %s", filename)
        else:
            data = get_bytes(client, f"{immich_url}/api/assets/{asset.id}/original", headers=headers)
            convert_to_webp(data, destination, quality=quality, label=asset.id)
        photos.append(
            Photo(
                image_path=f"/{images_subdir}/{filename}",
                caption=(asset.exif_info.description if asset.exif_info else None) or "",
                filename=asset.original_file_name,
            )
        )

    save_album_cache(cache_dir, album_id, photos)
    return photos


def convert_to_webp(data: bytes, destination: Path, *, quality: int = 85, label: str = "") -> None:
    """Write ``data`` as WebP without metadata, using ImageMagick for formats Pillow lacks (HEIC)."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
            image.save(destination, format="WEBP", quality=quality)
        return
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Pillow could not convert %s (%s); trying ImageMagick", label or destination.name, exc)

    _convert_with_imagemagick(data, destination, quality=quality, label=label)


def _convert_with_imagemagick(data: bytes, destination: Path, *, quality: int, label: str) -> None:
    temp_path = destination.with_name(f".tmp_{destination.stem}")
    try:
        temp_path.write_bytes(data)
    except OSError as exc:
        raise OutputError(temp_path, f"Cannot write temporary image ({exc.strerror or exc})") from exc
    try:
        subprocess.run(
            [
                "magick",
                "convert",
                f"heic:{temp_path}",
                "-strip",
                "-quality",
                str(quality),
                f"webp:{destination}",
            ],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as exc:
        raise ImageConversionError("ImageMagick ('magick') is not installed") from exc
    except subprocess.CalledProcessError as exc:
        raise ImageConversionError(f"ImageMagick failed to convert {label}: {exc.stderr.strip()}") from exc
    finally:
        temp_path.unlink(missing_ok=True)


def generate_pics_page(
    config: Config,
    renderer: PageRenderer,
    *,
    api_key: str | None,
    client: httpx.Client | None = None,
) -> SectionResult:
    settings = config.pics
    if not settings.immich_url or not settings.album_id:
        raise FetchError("Pictures are enabled but pics.immich_url or pics.album_id is not set")
    if not api_key:
        raise FetchError("Pictures are enabled but no Immich API key was provided")

    with (nullcontext(client) if client is not None else create_client(timeout=60.0)) as http:
        photos = fetch_album(
            immich_url=settings.immich_url,
            album_id=settings.album_id,
            api_key=api_key,
            output_root=config.output_dir,
            cache_dir=config.cache_dir,
            client=http,
            images_subdir=settings.images_subdir,
            quality=settings.quality,
        )

    result = SectionResult(section="pics", entries=len(photos))
    result.pages.append(renderer.render_page(config.output_dir, "pics/", "pics.html", photos=photos))
    return result
