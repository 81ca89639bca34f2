# build_gui_entry.py
# Entry script for frozen desktop builds (PyInstaller).
from sdv_audio_mod.ui.app import main

if __name__ == "__main__":
    raise SystemExit(main())
