from enum import Enum


class VehicleClass(str, Enum):
    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    PICKUP_2_DOOR = "pickup_2_doors"
    PICKUP_4_DOOR = "pickup_4_doors"

    def __str__(self):
        return self.value


class ModifierKind(str, Enum):
    FLAT = "flat"
    PERCENTAGE = "percentage"

    def __str__(self):
        return self.value


class StateDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    BOTH = "both"

    def __str__(self):
        return self.value


class ServiceLevel(str, Enum):
    ONE = "1"
    THREE = "3"
    FIVE = "5"
    SEVEN = "7"

    def __str__(self):
        return self.value

    @property
    def key(self) -> str:
        return _TIER_KEYS[self]

    @classmethod
    def parse(cls, raw) -> "ServiceLevel | None":
        """Accepts 1, "1", "one", "ONE_DAY", "1-day"; returns None when unrecognised."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, bool) or raw is None:
            return None
        text = str(raw).strip().lower().replace("-", "_").replace(" ", "_")
        for suffix in ("_day", "day"):
            if text.endswith(suffix):
                text = text[: -len(suffix)]
                break
        text = _TIER_WORDS.get(text, text)
        try:
            return cls(text)
        except ValueError:
            return None


_TIER_KEYS = {
    ServiceLevel.ONE: "one",
    ServiceLevel.THREE: "three",
    ServiceLevel.FIVE: "five",
    ServiceLevel.SEVEN: "seven",
}

_TIER_WORDS = {"one": "1", "three": "3", "five": "5", "seven": "7"}


class TrailerType(str, Enum):
    OPEN = "open"
    ENCLOSED = "enclosed"

    def __str__(self):
        return self.value


class RatingStrategyName(str, Enum):
    STANDARD = "standard"
    JK_SPLIT = "jk_split"

    def __str__(self):
        return self.value
