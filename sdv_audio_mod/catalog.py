"""Catalog of original Stardew Valley audio cue ids.

An entry whose id matches one of these cues replaces the original
track; anything else is a custom cue.  The catalog is passed to the
codec and to entry validation explicitly rather than read as a global.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class OriginalAudio:
    id: str
    name: str
    group: str


_ORIGINAL_AUDIO: Tuple[Tuple[str, str, str], ...] = (
    # Seasonal ambience
    ("spring_day_ambient", "Spring - Day (Ambient)", "Seasons"),
    ("spring_night_ambient", "Spring - Night (Ambient)", "Seasons"),
    ("summer_day_ambient", "Summer - Day (Ambient)", "Seasons"),
    ("summer_night_ambient", "Summer - Night (Ambient)", "Seasons"),
    ("fall_day_ambient", "Fall - Day (Ambient)", "Seasons"),
    ("fall_night_ambient", "Fall - Night (Ambient)", "Seasons"),
    ("winter_day_ambient", "Winter - Day (Ambient)", "Seasons"),
    ("winter_night_ambient", "Winter - Night (Ambient)", "Seasons"),
    # Spring
    ("spring1", "It's A Big World Outside", "Spring"),
    ("spring2", "Cloud Country", "Spring"),
    ("spring3", "Spring (The Valley Comes Alive)", "Spring"),
    # Summer
    ("summer1", "Nature's Crescendo", "Summer"),
    ("summer2", "The Sun Can Bend An Orange Sky", "Summer"),
    ("summer3", "A Golden Star Was Born", "Summer"),
    # Fall
    ("fall1", "Fall (Ghost Synth)", "Fall"),
    ("fall2", "Raven's Descent", "Fall"),
    ("fall3", "The Smell of Mushroom", "Fall"),
    # Winter
    ("winter1", "Nocturne of Ice", "Winter"),
    ("winter2", "The Frozen World Outside", "Winter"),
    ("winter3", "Winter (Ancient)", "Winter"),
    # Locations
    ("Saloon1", "Saloon - Honky Tonk", "Locations"),
    ("SamBand", "Sam's Band", "Locations"),
    ("Hospital_Ambient", "Hospital/Clinic", "Locations"),
    ("MarlonsTheme", "Marlon's Theme (Guild)", "Locations"),
    ("WizardSong", "Wizard's Theme", "Locations"),
    ("EmilyTheme", "Emily's Theme", "Locations"),
    ("ElliottPiano", "Elliott's Piano", "Locations"),
    ("VolcanoMines", "Volcano Mines", "Locations"),
    ("caldera", "Caldera", "Locations"),
    # Mines
    ("Crystal_Caves", "Mines - Ice Levels", "Mines"),
    ("Cloth_Caves", "Mines - Lava Levels", "Mines"),
    ("Mines1", "Mines - Early Levels", "Mines"),
    ("SkullCave", "Skull Cavern", "Mines"),
    ("tribal", "Tribal (Deep Mines)", "Mines"),
    # Menu
    ("MainTheme", "Main Theme (Title)", "Menu"),
    ("Cloud_Country", "Cloud Country (Menu)", "Menu"),
    ("title_night", "Night Theme (Title)", "Menu"),
    ("movieTheater", "Movie Theater", "Menu"),
    ("movieTheaterAfter", "Movie Theater (After)", "Menu"),
    # Festivals
    ("FlowerDance", "Flower Dance", "Festivals"),
    ("Luau", "Luau", "Festivals"),
    ("MoonlightJellies", "Dance of the Moonlight Jellies", "Festivals"),
    ("FairyIceCastle", "Festival of Ice", "Festivals"),
    ("WinterFestival", "Feast of the Winter Star", "Festivals"),
    ("FallFest", "Stardew Valley Fair", "Festivals"),
    ("SpiritsEve", "Spirit's Eve", "Festivals"),
    ("EggFestival", "Egg Festival", "Festivals"),
    # Events
    ("Grandpa", "Grandpa's Theme", "Events"),
    ("wedding", "Wedding", "Events"),
    ("EarthMine", "Earth Mine (Event)", "Events"),
    ("FrogCave", "Frog Cave", "Events"),
    # Minigames
    ("Cowboy_OVERWORLD", "Cowboy - Overworld", "Minigames"),
    ("Cowboy_boss", "Cowboy - Boss", "Minigames"),
    ("JunimoKart", "Junimo Kart", "Minigames"),
    ("crane_game", "Crane Game", "Minigames"),
    # Ginger Island
    ("IslandMusic", "Island Music", "Island"),
    ("PIRATE_THEME", "Pirate Theme", "Island"),
    ("fieldofficeTentMusic", "Field Office Tent", "Island"),
    # Other
    ("communityCenter", "Community Center", "Other"),
    ("woodsTheme", "Secret Woods", "Other"),
    ("sewer", "Sewer", "Other"),
    ("nightTime", "Night Time", "Other"),
    ("sweet", "Sweet", "Other"),
    ("sad", "Sad", "Other"),
    # Sound effects
    ("croak", "Frog Croak", "Sounds"),
    ("rainsound", "Rain", "Sounds"),
    ("thunder", "Thunder", "Sounds"),
    ("thunder_small", "Small Thunder", "Sounds"),
)


class AudioCatalog:
    """Case-insensitive lookup over a table of original audio cues."""

    def __init__(self, audios: Iterable[OriginalAudio]) -> None:
        self._audios: List[OriginalAudio] = list(audios)
        self._by_id: Dict[str, OriginalAudio] = {a.id.lower(): a for a in self._audios}

    def __iter__(self) -> Iterator[OriginalAudio]:
        return iter(self._audios)

    def __len__(self) -> int:
        return len(self._audios)

    def __contains__(self, audio_id: object) -> bool:
        return isinstance(audio_id, str) and audio_id.lower() in self._by_id

    def lookup(self, audio_id: str) -> Optional[OriginalAudio]:
        return self._by_id.get((audio_id or "").lower())

    def search(self, text: str) -> List[OriginalAudio]:
        """Return cues whose id, name or group contains ``text``."""
        needle = (text or "").lower()
        if not needle:
            return list(self._audios)
        return [
            a for a in self._audios
            if needle in a.id.lower() or needle in a.name.lower() or needle in a.group.lower()
        ]

    def groups(self) -> List[str]:
        seen: List[str] = []
        for audio in self._audios:
            if audio.group not in seen:
                seen.append(audio.group)
        return seen


DEFAULT_CATALOG = AudioCatalog(OriginalAudio(*row) for row in _ORIGINAL_AUDIO)
