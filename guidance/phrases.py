"""Localized object names and announcement sentence templates."""

from __future__ import annotations

from dataclasses import dataclass

from vision.clearance import Direction
from vision.tracker import Zone

DEFAULT_LOCALE = "en"

OBJECT_NAMES: dict[str, dict[str, str]] = {
    "en": {
        "person": "Person",
        "bicycle": "Bicycle",
        "car": "Car",
        "motorcycle": "Motorcycle",
        "airplane": "Airplane",
        "bus": "Bus",
        "train": "Train",
        "truck": "Truck",
        "boat": "Boat",
        "traffic light": "Traffic light",
        "fire hydrant": "Fire hydrant",
        "stop sign": "Stop sign",
        "parking meter": "Parking meter",
        "bench": "Bench",
        "bird": "Bird",
        "cat": "Cat",
        "dog": "Dog",
        "horse": "Horse",
        "sheep": "Sheep",
        "cow": "Cow",
        "elephant": "Elephant",
        "bear": "Bear",
        "zebra": "Zebra",
        "giraffe": "Giraffe",
        "backpack": "Backpack",
        "umbrella": "Umbrella",
        "handbag": "Handbag",
        "tie": "Tie",
        "suitcase": "Suitcase",
        "frisbee": "Frisbee",
        "skis": "Skis",
        "snowboard": "Snowboard",
        "sports ball": "Sports ball",
        "kite": "Kite",
        "baseball bat": "Baseball bat",
        "baseball glove": "Baseball glove",
        "skateboard": "Skateboard",
        "surfboard": "Surfboard",
        "tennis racket": "Tennis racket",
        "bottle": "Bottle",
        "wine glass": "Wine glass",
        "cup": "Cup",
        "fork": "Fork",
        "knife": "Knife",
        "spoon": "Spoon",
        "bowl": "Bowl",
        "banana": "Banana",
        "apple": "Apple",
        "sandwich": "Sandwich",
        "orange": "Orange",
        "broccoli": "Broccoli",
        "carrot": "Carrot",
        "hot dog": "Hot dog",
        "pizza": "Pizza",
        "donut": "Donut",
        "cake": "Cake",
        "chair": "Chair",
        "couch": "Couch",
        "potted plant": "Potted plant",
        "bed": "Bed",
        "dining table": "Dining table",
        "toilet": "Toilet",
        "tv": "TV",
        "laptop": "Laptop",
        "mouse": "Mouse",
        "remote": "Remote",
        "keyboard": "Keyboard",
        "cell phone": "Cell phone",
        "microwave": "Microwave",
        "oven": "Oven",
        "toaster": "Toaster",
        "sink": "Sink",
        "refrigerator": "Refrigerator",
        "book": "Book",
        "clock": "Clock",
        "vase": "Vase",
        "scissors": "Scissors",
        "teddy bear": "Teddy bear",
        "hair drier": "Hair drier",
        "toothbrush": "Toothbrush",
    },
    "ta": {
        "person": "நபர்",
        "bicycle": "மிதிவண்டி",
        "car": "கார்",
        "motorcycle": "மோட்டார் சைக்கிள்",
        "bus": "பேருந்து",
        "truck": "லாரி",
        "traffic light": "போக்குவரத்து விளக்கு",
        "stop sign": "நிறுத்து அடையாளம்",
        "bench": "பெஞ்ச்",
        "cat": "பூனை",
        "dog": "நாய்",
        "chair": "நாற்காலி",
        "cell phone": "கைபேசி",
        "bottle": "பாட்டில்",
        "laptop": "மடிக்கணினி",
        "tv": "தொலைக்காட்சி",
        "backpack": "முதுகுப்பை",
        "umbrella": "குடை",
        "handbag": "கைப்பை",
        "tie": "டை",
        "suitcase": "பெட்டி",
        "cup": "கோப்பை",
        "fork": "முள் கரண்டி",
        "knife": "கத்தி",
        "spoon": "கரண்டி",
        "bowl": "கிண்ணம்",
        "banana": "வாழைப்பழம்",
        "apple": "ஆப்பிள்",
        "sandwich": "சாண்ட்விச்",
        "orange": "ஆரஞ்சு",
        "broccoli": "ப்ரோக்கோலி",
        "carrot": "கேரட்",
        "pizza": "பீட்சா",
        "donut": "டோனட்",
        "cake": "கேக்",
        "bed": "படுக்கை",
        "dining table": "உணவு மேசை",
        "toilet": "கழிப்பறை",
        "mouse": "மவுஸ்",
        "remote": "ரிமோட்",
        "keyboard": "விசைப்பலகை",
        "book": "புத்தகம்",
        "clock": "கடிகாரம்",
        "vase": "பூச்சாடி",
        "scissors": "கத்தரிக்கோல்",
        "toothbrush": "பல் துலக்கி",
    },
}

# Detector labels for breeds and species collapse onto these categories.
FUZZY_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("dog", ("dog", "terrier", "retriever", "shepherd", "hound", "pug", "beagle")),
    ("cat", ("cat", "kitten", "tabby")),
    ("bird", ("bird", "eagle", "owl", "parrot")),
)

VEHICLE_LABELS = frozenset({"car", "truck", "bus", "motorcycle", "bicycle", "train"})
PERSON_LABEL = "person"


@dataclass(frozen=True)
class SentenceTemplates:
    """Sentence patterns for one locale."""

    object_in_zone: str
    obstacle_in_zone: str
    danger: str
    careful: str
    move: dict[Direction, str]
    zones: dict[Zone, str]
    welcome: str
    obstacle: str
    # Per-kind wording for the object sentence; None reuses object_in_zone.
    vehicle_in_zone: str | None = None
    person_in_zone: str | None = None


TEMPLATES: dict[str, SentenceTemplates] = {
    "en": SentenceTemplates(
        object_in_zone="{name} is {zone}, {action}.",
        obstacle_in_zone="{obstacle} {zone}, {action}.",
        danger="Warning! {name} very close {zone}. Stop immediately.",
        careful="be very careful",
        move={Direction.LEFT: "move left", Direction.RIGHT: "move right"},
        zones={
            Zone.FAR_LEFT: "on your far left",
            Zone.LEFT: "on your left",
            Zone.CENTER: "ahead",
            Zone.RIGHT: "on your right",
            Zone.FAR_RIGHT: "on your far right",
        },
        welcome="AI Navigation System Started.",
        obstacle="Obstacle",
    ),
    "ta": SentenceTemplates(
        object_in_zone="{zone} {name} இருக்கிறது, {action}.",
        obstacle_in_zone="{zone} {obstacle} உள்ளது, {action}.",
        danger="கவனம், {zone} {name} மிகவும் அருகில் இருக்கிறது, இப்போது நிறுத்துங்கள்.",
        careful="மிகவும் கவனமாக இருங்கள்",
        move={
            Direction.LEFT: "இடது பக்கம் நகருங்கள்",
            Direction.RIGHT: "வலது பக்கம் நகருங்கள்",
        },
        zones={
            Zone.FAR_LEFT: "இடது ஓரத்தில்",
            Zone.LEFT: "இடது பக்கம்",
            Zone.CENTER: "முன்னால்",
            Zone.RIGHT: "வலது பக்கம்",
            Zone.FAR_RIGHT: "வலது ஓரத்தில்",
        },
        welcome="AI வழிசெலுத்தல் அமைப்பு தொடங்கியது.",
        obstacle="தடை",
        vehicle_in_zone="கவனம், {zone} {name} வருகிறது, சற்று விலகி இருங்கள், {action}.",
        person_in_zone="{zone} {name} இருக்கிறார், கொஞ்சம் மெதுவாக நடக்கவும், {action}.",
    ),
}


class PhraseTable:
    """Key-to-phrase lookup consumed by the announcement policy."""

    def __init__(
        self,
        names: dict[str, dict[str, str]] | None = None,
        templates: dict[str, SentenceTemplates] | None = None,
        default_locale: str = DEFAULT_LOCALE,
    ) -> None:
        self._names = names if names is not None else OBJECT_NAMES
        self._templates = templates if templates is not None else TEMPLATES
        if default_locale not in self._templates:
            raise ValueError(f"No sentence templates for default locale {default_locale!r}")
        self.default_locale = default_locale

    @property
    def locales(self) -> tuple[str, ...]:
        return tuple(self._templates)

    def lookup(self, label: str, locale: str) -> str:
        """Return the display phrase for ``label``, falling back to the raw label."""

        names = self._names.get(locale, {})
        key = label.lower().strip()
        if key in names:
            return names[key]
        for category, keywords in FUZZY_CATEGORIES:
            if any(keyword in key for keyword in keywords) and category in names:
                return names[category]
        return label

    def templates(self, locale: str) -> SentenceTemplates:
        return self._templates.get(locale, self._templates[self.default_locale])

    def object_in_zone(self, label: str, zone: Zone, action: str, locale: str) -> str:
        """Vehicles and people get their own wording where the locale has one."""

        tpl = self.templates(locale)
        key = label.lower().strip()
        template = None
        if key in VEHICLE_LABELS:
            template = tpl.vehicle_in_zone
        elif key == PERSON_LABEL:
            template = tpl.person_in_zone
        return (template or tpl.object_in_zone).format(
            name=self.lookup(label, locale), zone=tpl.zones[zone], action=action
        )

    def obstacle_in_zone(self, zone: Zone, direction: Direction, locale: str) -> str:
        tpl = self.templates(locale)
        return tpl.obstacle_in_zone.format(
            obstacle=tpl.obstacle, zone=tpl.zones[zone], action=tpl.move[direction]
        )

    def danger(self, label: str, zone: Zone, locale: str) -> str:
        tpl = self.templates(locale)
        return tpl.danger.format(name=self.lookup(label, locale), zone=tpl.zones[zone])

    def move(self, direction: Direction, locale: str) -> str:
        return self.templates(locale).move[direction]

    def careful(self, locale: str) -> str:
        return self.templates(locale).careful

    def welcome(self, locale: str) -> str:
        return self.templates(locale).welcome
