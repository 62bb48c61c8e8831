"""
Category catalog and FreeDesktop category mapping
"""

from typing import Iterable, Optional, List, Dict

CATEGORIES: List[Dict[str, str]] = [
    {"slug": "audio-video", "name": "Audio & Video"},
    {"slug": "developer-tools", "name": "Developer Tools"},
    {"slug": "education", "name": "Education"},
    {"slug": "games", "name": "Games"},
    {"slug": "graphics", "name": "Graphics & Photography"},
    {"slug": "networking", "name": "Networking"},
    {"slug": "office", "name": "Office & Productivity"},
    {"slug": "science", "name": "Science & Math"},
    {"slug": "system", "name": "System"},
    {"slug": "utilities", "name": "Utilities"},
    {"slug": "libraries", "name": "Libraries & Frameworks"},
    {"slug": "command-line", "name": "Command Line"},
    {"slug": "fonts-themes", "name": "Fonts & Themes"},
]

VALID_SLUGS: List[str] = [c["slug"] for c in CATEGORIES]

FALLBACK_SLUG = "utilities"

# FreeDesktop main and additional categories -> local slug
FREEDESKTOP_TO_SLUG: Dict[str, str] = {
    # Audio & Video
    "AudioVideo": "audio-video", "Audio": "audio-video", "Video": "audio-video",
    "Midi": "audio-video", "Mixer": "audio-video", "Player": "audio-video",
    "Recorder": "audio-video", "Music": "audio-video", "Sequencer": "audio-video",
    # Developer Tools
    "Development": "developer-tools", "Building": "developer-tools",
    "Debugger": "developer-tools", "IDE": "developer-tools",
    "RevisionControl": "developer-tools", "WebDevelopment": "developer-tools",
    "Profiling": "developer-tools", "Translation": "developer-tools",
    "GUIDesigner": "developer-tools",
    # Education
    "Education": "education",
    # Games
    "Game": "games", "ActionGame": "games", "ArcadeGame": "games",
    "BoardGame": "games", "BlocksGame": "games", "CardGame": "games",
    "KidsGame": "games", "LogicGame": "games", "RolePlaying": "games",
    "Shooter": "games", "Simulation": "games", "SportsGame": "games",
    "StrategyGame": "games", "Emulator": "games", "AdventureGame": "games",
    # Graphics
    "Graphics": "graphics", "2DGraphics": "graphics", "3DGraphics": "graphics",
    "VectorGraphics": "graphics", "RasterGraphics": "graphics",
    "Photography": "graphics", "Scanning": "graphics", "OCR": "graphics",
    "Viewer": "graphics", "Publishing": "graphics",
    # Networking
    "Network": "networking", "Chat": "networking", "Email": "networking",
    "FileTransfer": "networking", "InstantMessaging": "networking",
    "IRCClient": "networking", "WebBrowser": "networking",
    "RemoteAccess": "networking", "P2P": "networking", "News": "networking",
    "Telephony": "networking", "VideoConference": "networking",
    # Office
    "Office": "office", "Calendar": "office", "ContactManagement": "office",
    "Database": "office", "Dictionary": "office", "Finance": "office",
    "FlowChart": "office", "PDA": "office", "Presentation": "office",
    "ProjectManagement": "office", "Spreadsheet": "office",
    "WordProcessor": "office",
    # Science
    "Science": "science", "Astronomy": "science", "Biology": "science",
    "Chemistry": "science", "ComputerScience": "science",
    "DataVisualization": "science", "Math": "science",
    "NumericalAnalysis": "science", "Physics": "science",
    "Geography": "science", "Geology": "science", "Geoscience": "science",
    "MedicalSoftware": "science", "Electronics": "science",
    "Engineering": "science", "Robotics": "science",
    # System
    "System": "system", "Settings": "system", "Accessibility": "system",
    "FileManager": "system", "Monitor": "system", "PackageManager": "system",
    "Security": "system", "TerminalEmulator": "system",
    # Utilities
    "Utility": "utilities", "Archiving": "utilities", "Calculator": "utilities",
    "Clock": "utilities", "Compression": "utilities", "FileTools": "utilities",
    "TextEditor": "utilities",
}


def map_freedesktop_categories(labels: Iterable[str]) -> Optional[str]:
    """Return the slug of the first label that has a mapping, or None"""
    for label in labels:
        slug = FREEDESKTOP_TO_SLUG.get(label)
        if slug:
            return slug
    return None
