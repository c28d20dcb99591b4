from typing import TypedDict, List


class SavePlacedSpirit(TypedDict):
    id: str
    spiritId: str
    gridX: int
    gridY: int
    level: int
    experience: int

class SaveInventoryEntry(TypedDict):
    spiritId: str
    count: int

class SaveSettings(TypedDict):
    musicVolume: float
    sfxVolume: float

class SaveGame(TypedDict):
    version: int
    essence: float
    gems: int
    unlockedCells: int
    placedSpirits: List[SavePlacedSpirit]
    inventory: List[SaveInventoryEntry]
    totalSummons: int
    totalEssenceEarned: float
    achievements: List[str]
    lastSaveTime: int               # epoch ms
    settings: SaveSettings
