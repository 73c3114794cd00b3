"""A renderer wrapper that keeps rendered manifests in files on disk."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any

import yaml

from kdeclare.object import Object, State
from kdeclare.options import NO_MANIFEST_CACHE, Options
from kdeclare.renderer import EventRecorder, Renderer
from kdeclare.spec import RenderMode, Spec

_logger = logging.getLogger(__name__)

_MANIFEST_DIR = "manifest"


def _calculate_hash(values: Any) -> int:
    encoded = json.dumps(values, sort_keys=True, default=str).encode()
    return int.from_bytes(hashlib.sha256(encoded).digest()[:8], "big")


def _mode_text(mode: Any) -> str:
    if isinstance(mode, RenderMode):
        return mode.value
    return str(mode) if mode else ""


class ManifestCache:
    """The cache file of one specification, below ``<base>/manifest/<spec path>``."""

    def __init__(self, base_dir: str, spec: Spec) -> None:
        self.root = os.path.join(base_dir, _MANIFEST_DIR, spec.path)
        self.hash = str(_calculate_hash(spec.values))
        stem = os.path.join(self.root, spec.manifest_name)
        self.file = f"{stem}-{_mode_text(spec.mode)}-{self.hash}.yaml"

    def __str__(self) -> str:
        return self.file

    def clean(self) -> None:
        """Remove every cached file below the root other than this cache's file."""
        for _dirpath, _dirnames, filenames in os.walk(self.root):
            for name in filenames:
                old_file = os.path.join(self.root, name)
                if old_file != self.file:
                    os.remove(old_file)

    def read(self) -> bytes | None:
        """Return the cached manifest, or None if it is missing or not valid YAML."""
        try:
            content = Path(self.file).read_bytes()
        except OSError:
            return None
        try:
            for _document in yaml.safe_load_all(content):
                pass
        except yaml.YAMLError:
            return None
        return content

    def write(self, manifest: bytes) -> None:
        path = Path(self.file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(manifest)


class RendererWithCache(Renderer):
    """Renders through another renderer only when no cached manifest exists."""

    def __init__(self, renderer: Renderer, recorder: EventRecorder | None, cache: ManifestCache) -> None:
        self.renderer = renderer
        self.recorder = recorder
        self.cache = cache

    def _event(self, obj: Object, event_type: str, reason: str, message: str) -> None:
        if self.recorder is not None:
            self.recorder.event(obj, event_type, reason, message)

    def initialize(self, obj: Object) -> None:
        self.renderer.initialize(obj)

    def ensure_prerequisites(self, obj: Object) -> None:
        self.renderer.ensure_prerequisites(obj)

    def remove_prerequisites(self, obj: Object) -> None:
        self.renderer.remove_prerequisites(obj)

    def render(self, obj: Object) -> bytes:
        status = obj.status

        try:
            self.cache.clean()
        except OSError as err:
            failure = RuntimeError(f"cleaning cache failed: {err}")
            self._event(obj, "Warning", "ManifestCacheCleanup", str(failure))
            obj.status = status.with_state(State.ERROR).with_err(failure)
            raise failure from err

        cached = self.cache.read()
        if cached is not None:
            _logger.debug("reuse manifest from cache %s (hash %s)", self.cache, self.cache.hash)
            return cached

        started = time.monotonic()
        _logger.info("no cached manifest, rendering again: %s", self.cache)
        try:
            manifest = self.renderer.render(obj)
        except Exception as err:
            self._event(obj, "Warning", "RenderNonCached", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise RuntimeError(f"rendering new manifest failed: {err}") from err
        _logger.info("rendering finished in %.3fs", time.monotonic() - started)

        try:
            self.cache.write(manifest)
        except OSError as err:
            self._event(obj, "Warning", "ManifestCacheWrite", str(err))
            obj.status = status.with_state(State.ERROR).with_err(err)
            raise
        return manifest


def wrap_with_renderer_cache(renderer: Renderer, spec: Spec, options: Options) -> Renderer:
    """Wrap ``renderer`` with a file cache unless caching is disabled."""
    if options.manifest_cache == NO_MANIFEST_CACHE:
        return renderer
    return RendererWithCache(
        renderer, options.event_recorder, ManifestCache(options.manifest_cache, spec)
    )