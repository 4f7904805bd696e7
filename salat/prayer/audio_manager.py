import pygame
import threading
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Any
import requests

from .prayers import Prayer


class AdhanManager:
    """Audio sink: plays the adhan for a prayer through the pygame mixer.

    Files live in adhan.audio_dir as adhan_<prayer>.mp3 and are downloaded in the
    background from adhan.prayer_specific.<Name>.url or adhan.default_url when missing.
    A prayer with no file of its own falls back to adhan_default.mp3.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, download: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.mixer_ready = False
        self.current_prayer: Optional[str] = None
        self.adhan_files: Dict[str, Path] = {}
        self.configure(config or {}, download=download)

    def configure(self, config: Dict[str, Any], download: bool = True) -> None:
        self.config = config
        self.audio_dir = Path(os.path.expanduser(config.get("audio_dir") or "~/.salat/audio"))
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        self._setup_adhan_files(download=download)

    def _init_mixer(self) -> bool:
        if self.mixer_ready:
            return True
        try:
            pygame.mixer.init()
            self.mixer_ready = True
        except pygame.error as e:
            self.logger.error(f"Audio device unavailable: {e}")
        return self.mixer_ready

    def _url_for(self, name: str) -> Optional[str]:
        prayer_specific = self.config.get("prayer_specific") or {}
        return (prayer_specific.get(name) or {}).get("url") or self.config.get("default_url")

    def _setup_adhan_files(self, download: bool = True) -> None:
        """Setup adhan files and download if missing"""
        names = [prayer.display_name for prayer in Prayer] + ["Default"]
        for name in names:
            self.adhan_files[name] = self.audio_dir / f"adhan_{name.lower()}.mp3"
            if download and not self.adhan_files[name].exists():
                url = self._url_for(name)
                if url:
                    self._start_background_download(name, url)

    def _start_background_download(self, name: str, url: str) -> None:
        """Start a background thread to download adhan file"""
        def download():
            self.logger.info(f"Starting background download for {name} adhan")
            self._download_adhan(url, self.adhan_files[name])

        thread = threading.Thread(target=download, daemon=True)
        thread.start()

    def _download_adhan(self, url: str, file_path: Path) -> bool:
        """Download adhan file to file_path"""
        try:
            self.logger.info(f"Downloading adhan from: {url} to {file_path}")
            response = requests.get(url, stream=True, timeout=30)
            response.raise_for_status()

            partial = file_path.with_suffix(".part")
            with open(partial, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
            partial.replace(file_path)

            self.logger.info(f"Adhan file downloaded successfully to {file_path}")
            return True

        except (requests.RequestException, OSError) as e:
            self.logger.error(f"Error downloading adhan file: {e}")
            return False

    def get_adhan_file(self, prayer_name: str) -> Optional[Path]:
        """Local file for prayer_name, else the default adhan, else None."""
        for name in (prayer_name, "Default"):
            path = self.adhan_files.get(name)
            if path and path.exists():
                return path
        return None

    @property
    def is_playing(self) -> bool:
        return self.mixer_ready and pygame.mixer.music.get_busy()

    def stop_adhan(self) -> None:
        """Stop currently playing adhan"""
        if self.is_playing:
            pygame.mixer.music.stop()
            self.logger.info(f"Stopped adhan for {self.current_prayer}")
        self.current_prayer = None

    def play_adhan(self, prayer_name: str, volume: float = 0.8) -> bool:
        """Play the adhan for prayer_name at volume (0.0-1.0). Returns True if playback started."""
        self.logger.info(f"Playing adhan for {prayer_name} at volume {volume}")
        adhan_file = self.get_adhan_file(prayer_name)
        if adhan_file is None:
            self.logger.error(f"No adhan file available for {prayer_name}")
            return False
        if not self._init_mixer():
            return False
        try:
            self.stop_adhan()
            pygame.mixer.music.set_volume(max(0.0, min(1.0, volume)))
            pygame.mixer.music.load(str(adhan_file))
            pygame.mixer.music.play()
            self.current_prayer = prayer_name
            self.logger.info("Adhan playback started")
            return True
        except pygame.error as e:
            self.logger.error(f"Error playing adhan: {e}", exc_info=True)
            return False
