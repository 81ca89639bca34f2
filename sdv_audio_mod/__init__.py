"""SDV Audio Mod Maker.

This package turns a folder of audio files into a Content Patcher
content pack that adds or replaces Stardew Valley music, ambience and
sound effects.  The GUI and the command-line interface share one core:

* :mod:`sdv_audio_mod.models` and :mod:`sdv_audio_mod.reducer` – the
  immutable project state and the pure commands that change it, owned
  at runtime by :class:`sdv_audio_mod.store.ProjectStore`.
* :mod:`sdv_audio_mod.codec` – the versioned save format used for
  explicit saves and for auto-save.
* :class:`sdv_audio_mod.scanner.AudioScanner` – classifies the files
  of an assets folder (OGG Vorbis and WAV are accepted as-is).
* :mod:`sdv_audio_mod.builder` and :mod:`sdv_audio_mod.packaging` –
  generate ``manifest.json``, ``content.json`` and
  ``i18n/default.json`` and write them to a folder, a ZIP archive or
  browser downloads.
* :mod:`sdv_audio_mod.host` – what the running environment can do.
  The desktop host can probe, convert (through ffmpeg) and watch
  folders; the web host cannot.
* :class:`sdv_audio_mod.session.ProjectSession` – the context object
  tying these together for one open project.

Settings live in AppData (``%APPDATA%\\SDVAudioMod`` on Windows or
``~/.config/SDVAudioMod`` elsewhere) unless portable mode is enabled
with a ``portable.flag`` file or the ``--portable`` CLI flag.
"""

from .config_service import ConfigService  # noqa: F401
from .host import DesktopHost, WebHost, create_host  # noqa: F401
from .models import AudioCategory, AudioEntry, JukeboxConfig, ModConfig  # noqa: F401
from .session import Notice, ProjectSession  # noqa: F401
from .store import ProjectStore  # noqa: F401

__version__ = "1.0.0"
