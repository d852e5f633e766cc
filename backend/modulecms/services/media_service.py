import logging
import math
import os
import posixpath
from typing import Any, Dict, List, Optional

from flask import current_app
from PIL import Image, ImageEnhance, ImageOps

from modulecms.utils.slugs import sanitize_filename_base
from .storage_service import storage_service

logger = logging.getLogger(__name__)

RASTER_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".tif", ".tiff", ".bmp", ".avif"}

DEFAULT_DERIVATIVES = "thumb:200x200_crop,small:400x,medium:800x,large:1600x"

MIME_BY_EXT = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
    ".pdf": "application/pdf",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}


def infer_mime(filename: str) -> str:
    return MIME_BY_EXT.get(os.path.splitext(filename)[1].lower(), "application/octet-stream")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class MediaService:
    """Image derivatives, WebP optimisation and file renames for media assets."""

    def parse_derivatives(self, raw: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Parse ``name:WxH[_crop]`` entries. Either dimension may be empty;
        ``crop`` selects cover fit, otherwise the image is fit inside the box.
        """
        if raw is None:
            raw = current_app.config.get("MEDIA_DERIVATIVES") or DEFAULT_DERIVATIVES
        specs = []
        for part in (p.strip() for p in raw.split(",")):
            if not part or ":" not in part:
                continue
            name, dims = part.split(":", 1)
            if not name or not dims:
                continue
            crop = "crop" in dims.lower()
            dims = dims.lower().replace("_crop", "").replace("crop", "")
            w_str, _, h_str = dims.partition("x")
            width = int(w_str) if w_str.isdigit() and int(w_str) > 0 else None
            height = int(h_str) if h_str.isdigit() and int(h_str) > 0 else None
            if not width and not height:
                continue
            specs.append({
                "name": name,
                "width": width,
                "height": height,
                "fit": "cover" if crop else "inside",
            })
        return specs

    def compute_focal_crop_rect(
        self,
        original_w: int,
        original_h: int,
        spec: Dict[str, Any],
        focal: Dict[str, float],
    ) -> Optional[Dict[str, int]]:
        """Largest rectangle of the target ratio centred on the focal point, clamped to the image."""
        if not spec.get("width") or not spec.get("height"):
            return None
        ratio = spec["width"] / spec["height"]
        crop_w = min(original_w, _round_half_up(original_h * ratio))
        crop_h = min(original_h, _round_half_up(original_w / ratio))
        if _round_half_up(crop_w / ratio) != crop_h:
            crop_h = _round_half_up(crop_w / ratio)

        cx = max(0, min(original_w, _round_half_up(focal["x"] * original_w)))
        cy = max(0, min(original_h, _round_half_up(focal["y"] * original_h)))
        left = max(0, _round_half_up(cx - crop_w / 2))
        top = max(0, _round_half_up(cy - crop_h / 2))
        if left + crop_w > original_w:
            left = original_w - crop_w
        if top + crop_h > original_h:
            top = original_h - crop_h
        return {"left": left, "top": top, "width": crop_w, "height": crop_h}

    def _resize(self, img: Image.Image, spec: Dict[str, Any]) -> Image.Image:
        width, height = spec.get("width"), spec.get("height")
        src_w, src_h = img.size
        if not width and not height:
            return img
        if spec.get("fit") == "cover" and width and height:
            return ImageOps.fit(img, (width, height), Image.LANCZOS)
        if width and height:
            scale = min(width / src_w, height / src_h)
        elif width:
            scale = width / src_w
        else:
            scale = height / src_h
        size = (max(1, round(src_w * scale)), max(1, round(src_h * scale)))
        return img.resize(size, Image.LANCZOS)

    def _tint_dark(self, img: Image.Image) -> Image.Image:
        brightness = _clamp(float(current_app.config.get("MEDIA_DARK_BRIGHTNESS", 0.55)), 0.1, 2)
        saturation = _clamp(float(current_app.config.get("MEDIA_DARK_SATURATION", 0.75)), 0, 2)
        alpha = None
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            alpha = img.getchannel("A")
        rgb = img.convert("RGB")
        rgb = ImageEnhance.Brightness(rgb).enhance(brightness)
        rgb = ImageEnhance.Color(rgb).enhance(saturation)
        if alpha is not None:
            rgb.putalpha(alpha)
        return rgb

    @staticmethod
    def _save(img: Image.Image, out_path: str, **params) -> None:
        ext = os.path.splitext(out_path)[1].lower()
        if ext in (".jpg", ".jpeg") and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.save(out_path, **params)

    def generate_variants(
        self,
        input_path: str,
        public_url: str,
        specs: Optional[List[Dict[str, Any]]] = None,
        crop_rect: Optional[Dict[str, int]] = None,
        focal_point: Optional[Dict[str, float]] = None,
        theme: str = "light",
        apply_tint: Optional[bool] = None,
        name_suffix: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Write ``<name>.<variant><ext>`` files beside the input and describe them.

        An explicit ``crop_rect`` wins over the focal point; the focal point
        only steers cover-fit variants.
        """
        specs = specs or self.parse_derivatives()
        if not specs:
            return []
        if apply_tint is None:
            apply_tint = theme == "dark"
        if name_suffix is None:
            name_suffix = "-dark" if theme == "dark" else ""

        directory, filename = os.path.split(input_path)
        stem, ext = os.path.splitext(filename)
        url_dir = storage_service.relative_dir(public_url)

        variants = []
        with Image.open(input_path) as source:
            source.load()
            original_w, original_h = source.size
            for spec in specs:
                variant_name = f"{spec['name']}{name_suffix}"
                out_name = f"{stem}.{variant_name}{ext}"
                out_path = os.path.join(directory, out_name)

                img = source.copy()
                if crop_rect and crop_rect.get("width", 0) > 0 and crop_rect.get("height", 0) > 0:
                    left = max(0, int(crop_rect["left"]))
                    top = max(0, int(crop_rect["top"]))
                    img = img.crop((left, top, left + int(crop_rect["width"]), top + int(crop_rect["height"])))
                elif focal_point and spec["fit"] == "cover" and original_w and original_h:
                    rect = self.compute_focal_crop_rect(original_w, original_h, spec, focal_point)
                    if rect:
                        img = img.crop((
                            rect["left"],
                            rect["top"],
                            rect["left"] + rect["width"],
                            rect["top"] + rect["height"],
                        ))

                img = self._resize(img, spec)
                if apply_tint:
                    img = self._tint_dark(img)

                self._save(img, out_path)
                variants.append({
                    "name": variant_name,
                    "url": posixpath.join(url_dir, out_name),
                    "width": img.width,
                    "height": img.height,
                    "size": os.path.getsize(out_path),
                })

        return variants

    def create_dark_base(self, input_path: str, public_url: str) -> str:
        """Tinted full-size copy named ``<name>-dark<ext>``. Returns its public URL."""
        directory, filename = os.path.split(input_path)
        stem, ext = os.path.splitext(filename)
        dark_name = f"{stem}-dark{ext}"
        with Image.open(input_path) as source:
            source.load()
            self._save(self._tint_dark(source), os.path.join(directory, dark_name))
        return posixpath.join(storage_service.relative_dir(public_url), dark_name)

    def optimize_to_webp(self, input_path: str, public_url: str) -> Optional[Dict[str, Any]]:
        """Encode a raster image as WebP; ``None`` for non-raster input."""
        directory, filename = os.path.split(input_path)
        stem, ext = os.path.splitext(filename)
        if ext.lower() not in RASTER_EXTENSIONS:
            return None

        out_name = f"{stem}.optimized.webp" if ext.lower() == ".webp" else f"{stem}.webp"
        out_path = os.path.join(directory, out_name)
        try:
            quality = int(current_app.config.get("MEDIA_WEBP_QUALITY", 82))
        except (TypeError, ValueError):
            quality = 82
        quality = int(_clamp(quality, 1, 100))

        with Image.open(input_path) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
            img.save(out_path, "WEBP", quality=quality)

        return {
            "optimized_path": out_path,
            "optimized_url": posixpath.join(storage_service.relative_dir(public_url), out_name),
            "size": os.path.getsize(out_path),
        }

    def optimize_variants(self, variants: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        results = []
        for variant in variants:
            url = variant.get("url")
            if not url or not storage_service.exists(url):
                results.append(variant)
                continue
            optimized = self.optimize_to_webp(storage_service.abs_path(url), url)
            if optimized:
                results.append({
                    **variant,
                    "optimizedUrl": optimized["optimized_url"],
                    "optimizedSize": optimized["size"],
                })
            else:
                results.append(variant)
        return results

    def free_name(self, directory: str, base: str, ext: str, tails: Optional[List[str]] = None) -> str:
        """
        First of ``base``, ``base-1``, ``base-2``... for which neither
        ``<stem><ext>`` nor any ``<stem><tail>`` exists yet.
        """
        tails = [ext] + list(tails or [])
        stem = base
        counter = 1
        while any(os.path.exists(os.path.join(directory, f"{stem}{tail}")) for tail in tails):
            stem = f"{base}-{counter}"
            counter += 1
        return stem

    def rename_with_variants(
        self,
        old_url: str,
        requested_name: str,
        derived_urls: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Rename the original and the derived files listed in ``derived_urls``.
        Only derived files named ``<old stem><tail>`` beside the original move;
        other files in the directory are never touched.
        """
        old_path = storage_service.abs_path(old_url)
        directory, filename = os.path.split(old_path)
        old_stem, ext = os.path.splitext(filename)
        url_dir = storage_service.relative_dir(old_url)

        provided_stem, provided_ext = os.path.splitext(requested_name.strip())
        base = provided_stem if provided_ext else requested_name.strip()
        if provided_ext:
            ext = provided_ext if provided_ext.startswith(".") else f".{provided_ext}"
        base = sanitize_filename_base(base)

        tails = []
        for url in derived_urls or []:
            name = posixpath.basename(url)
            if storage_service.relative_dir(url) == url_dir and name.startswith(old_stem) and name != filename:
                tails.append(name[len(old_stem):])

        new_stem = self.free_name(directory, base, ext, tails)
        new_url = posixpath.join(url_dir, f"{new_stem}{ext}")
        storage_service.rename(old_url, new_url)

        renamed = []
        try:
            for tail in tails:
                entry_old = posixpath.join(url_dir, old_stem + tail)
                if not storage_service.exists(entry_old):
                    continue
                entry_new = posixpath.join(url_dir, new_stem + tail)
                storage_service.rename(entry_old, entry_new)
                renamed.append({"old_url": entry_old, "new_url": entry_new})
        except OSError:
            self.undo_rename({"old_url": old_url, "new_url": new_url, "renamed": renamed})
            raise

        logger.info("Renamed %s to %s with %d derived files", old_url, new_url, len(renamed))
        return {
            "old_url": old_url,
            "new_url": new_url,
            "new_filename": f"{new_stem}{ext}",
            "renamed": renamed,
        }

    def undo_rename(self, result: Dict[str, Any]) -> None:
        """Move the files of a ``rename_with_variants`` result back to their old names."""
        moves = [{"old_url": result["old_url"], "new_url": result["new_url"]}] + list(result["renamed"])
        for move in reversed(moves):
            try:
                storage_service.rename(move["new_url"], move["old_url"])
            except OSError as exc:
                logger.error("Could not restore %s to %s: %s", move["new_url"], move["old_url"], exc)


media_service = MediaService()
