# tracker/categories.py
"""
Closed enumeration of tracked stat categories.

Every category belongs to exactly one CategoryGroup; the group carries the
baseline used when an entity has no prior value for that category (skills
start at level 1, every score-like counter starts at 0).
"""

from __future__ import annotations

from enum import Enum


class CategoryGroup(str, Enum):
    SKILLS = "skills"
    BOSSES = "bosses"
    CLUES = "clues"
    ACTIVITIES = "activities"

    @property
    def baseline(self) -> int:
        return 1 if self is CategoryGroup.SKILLS else 0

    @property
    def categories(self) -> tuple[Category, ...]:
        return _BY_GROUP[self]


class Category(Enum):
    # (key, group, upstream label)
    ATTACK = ("attack", CategoryGroup.SKILLS, "Attack")
    DEFENCE = ("defence", CategoryGroup.SKILLS, "Defence")
    STRENGTH = ("strength", CategoryGroup.SKILLS, "Strength")
    HITPOINTS = ("hitpoints", CategoryGroup.SKILLS, "Hitpoints")
    RANGED = ("ranged", CategoryGroup.SKILLS, "Ranged")
    PRAYER = ("prayer", CategoryGroup.SKILLS, "Prayer")
    MAGIC = ("magic", CategoryGroup.SKILLS, "Magic")
    COOKING = ("cooking", CategoryGroup.SKILLS, "Cooking")
    WOODCUTTING = ("woodcutting", CategoryGroup.SKILLS, "Woodcutting")
    FLETCHING = ("fletching", CategoryGroup.SKILLS, "Fletching")
    FISHING = ("fishing", CategoryGroup.SKILLS, "Fishing")
    FIREMAKING = ("firemaking", CategoryGroup.SKILLS, "Firemaking")
    CRAFTING = ("crafting", CategoryGroup.SKILLS, "Crafting")
    SMITHING = ("smithing", CategoryGroup.SKILLS, "Smithing")
    MINING = ("mining", CategoryGroup.SKILLS, "Mining")
    HERBLORE = ("herblore", CategoryGroup.SKILLS, "Herblore")
    AGILITY = ("agility", CategoryGroup.SKILLS, "Agility")
    THIEVING = ("thieving", CategoryGroup.SKILLS, "Thieving")
    SLAYER = ("slayer", CategoryGroup.SKILLS, "Slayer")
    FARMING = ("farming", CategoryGroup.SKILLS, "Farming")
    RUNECRAFT = ("runecraft", CategoryGroup.SKILLS, "Runecraft")
    HUNTER = ("hunter", CategoryGroup.SKILLS, "Hunter")
    CONSTRUCTION = ("construction", CategoryGroup.SKILLS, "Construction")

    ABYSSAL_SIRE = ("abyssalSire", CategoryGroup.BOSSES, "Abyssal Sire")
    ALCHEMICAL_HYDRA = ("alchemicalHydra", CategoryGroup.BOSSES, "Alchemical Hydra")
    ARTIO = ("artio", CategoryGroup.BOSSES, "Artio")
    BARROWS = ("barrows", CategoryGroup.BOSSES, "Barrows Chests")
    BRYOPHYTA = ("bryophyta", CategoryGroup.BOSSES, "Bryophyta")
    CALLISTO = ("callisto", CategoryGroup.BOSSES, "Callisto")
    CALVARION = ("calvarion", CategoryGroup.BOSSES, "Calvar'ion")
    CERBERUS = ("cerberus", CategoryGroup.BOSSES, "Cerberus")
    CHAMBERS_OF_XERIC = ("chambersOfXeric", CategoryGroup.BOSSES, "Chambers of Xeric")
    CHAMBERS_OF_XERIC_CM = (
        "chambersOfXericChallengeMode",
        CategoryGroup.BOSSES,
        "Chambers of Xeric: Challenge Mode",
    )
    CHAOS_ELEMENTAL = ("chaosElemental", CategoryGroup.BOSSES, "Chaos Elemental")
    CHAOS_FANATIC = ("chaosFanatic", CategoryGroup.BOSSES, "Chaos Fanatic")
    COMMANDER_ZILYANA = ("commanderZilyana", CategoryGroup.BOSSES, "Commander Zilyana")
    CORPOREAL_BEAST = ("corporealBeast", CategoryGroup.BOSSES, "Corporeal Beast")
    CRAZY_ARCHAEOLOGIST = ("crazyArchaeologist", CategoryGroup.BOSSES, "Crazy Archaeologist")
    DAGANNOTH_PRIME = ("dagannothPrime", CategoryGroup.BOSSES, "Dagannoth Prime")
    DAGANNOTH_REX = ("dagannothRex", CategoryGroup.BOSSES, "Dagannoth Rex")
    DAGANNOTH_SUPREME = ("dagannothSupreme", CategoryGroup.BOSSES, "Dagannoth Supreme")
    DERANGED_ARCHAEOLOGIST = (
        "derangedArchaeologist",
        CategoryGroup.BOSSES,
        "Deranged Archaeologist",
    )
    DUKE_SUCELLUS = ("dukeSucellus", CategoryGroup.BOSSES, "Duke Sucellus")
    GENERAL_GRAARDOR = ("generalGraardor", CategoryGroup.BOSSES, "General Graardor")
    GIANT_MOLE = ("giantMole", CategoryGroup.BOSSES, "Giant Mole")
    GROTESQUE_GUARDIANS = ("grotesqueGuardians", CategoryGroup.BOSSES, "Grotesque Guardians")
    HESPORI = ("hespori", CategoryGroup.BOSSES, "Hespori")
    KALPHITE_QUEEN = ("kalphiteQueen", CategoryGroup.BOSSES, "Kalphite Queen")
    KING_BLACK_DRAGON = ("kingBlackDragon", CategoryGroup.BOSSES, "King Black Dragon")
    KRAKEN = ("kraken", CategoryGroup.BOSSES, "Kraken")
    KREEARRA = ("kreeArra", CategoryGroup.BOSSES, "Kree'Arra")
    KRIL_TSUTSAROTH = ("krilTsutsaroth", CategoryGroup.BOSSES, "K'ril Tsutsaroth")
    MIMIC = ("mimic", CategoryGroup.BOSSES, "Mimic")
    NEX = ("nex", CategoryGroup.BOSSES, "Nex")
    NIGHTMARE = ("nightmare", CategoryGroup.BOSSES, "Nightmare")
    PHOSANIS_NIGHTMARE = ("phosanisNightmare", CategoryGroup.BOSSES, "Phosani's Nightmare")
    OBOR = ("obor", CategoryGroup.BOSSES, "Obor")
    PHANTOM_MUSPAH = ("phantomMuspah", CategoryGroup.BOSSES, "Phantom Muspah")
    SARACHNIS = ("sarachnis", CategoryGroup.BOSSES, "Sarachnis")
    SCORPIA = ("scorpia", CategoryGroup.BOSSES, "Scorpia")
    SCURRIUS = ("scurrius", CategoryGroup.BOSSES, "Scurrius")
    SKOTIZO = ("skotizo", CategoryGroup.BOSSES, "Skotizo")
    SPINDEL = ("spindel", CategoryGroup.BOSSES, "Spindel")
    TEMPOROSS = ("tempoross", CategoryGroup.BOSSES, "Tempoross")
    THE_GAUNTLET = ("theGauntlet", CategoryGroup.BOSSES, "The Gauntlet")
    THE_CORRUPTED_GAUNTLET = (
        "theCorruptedGauntlet",
        CategoryGroup.BOSSES,
        "The Corrupted Gauntlet",
    )
    THE_LEVIATHAN = ("theLeviathan", CategoryGroup.BOSSES, "The Leviathan")
    THE_WHISPERER = ("theWhisperer", CategoryGroup.BOSSES, "The Whisperer")
    THEATRE_OF_BLOOD = ("theatreOfBlood", CategoryGroup.BOSSES, "Theatre of Blood")
    THEATRE_OF_BLOOD_HM = (
        "theatreOfBloodHardMode",
        CategoryGroup.BOSSES,
        "Theatre of Blood: Hard Mode",
    )
    THERMONUCLEAR_SMOKE_DEVIL = (
        "thermonuclearSmokeDevil",
        CategoryGroup.BOSSES,
        "Thermonuclear Smoke Devil",
    )
    TOMBS_OF_AMASCUT = ("tombsOfAmascut", CategoryGroup.BOSSES, "Tombs of Amascut")
    TOMBS_OF_AMASCUT_EXPERT = (
        "tombsOfAmascutExpertMode",
        CategoryGroup.BOSSES,
        "Tombs of Amascut: Expert Mode",
    )
    TZKAL_ZUK = ("tzKalZuk", CategoryGroup.BOSSES, "TzKal-Zuk")
    TZTOK_JAD = ("tzTokJad", CategoryGroup.BOSSES, "TzTok-Jad")
    VARDORVIS = ("vardorvis", CategoryGroup.BOSSES, "Vardorvis")
    VENENATIS = ("venenatis", CategoryGroup.BOSSES, "Venenatis")
    VETION = ("vetion", CategoryGroup.BOSSES, "Vet'ion")
    VORKATH = ("vorkath", CategoryGroup.BOSSES, "Vorkath")
    WINTERTODT = ("wintertodt", CategoryGroup.BOSSES, "Wintertodt")
    ZALCANO = ("zalcano", CategoryGroup.BOSSES, "Zalcano")
    ZULRAH = ("zulrah", CategoryGroup.BOSSES, "Zulrah")

    CLUE_BEGINNER = ("beginner", CategoryGroup.CLUES, "Clue Scrolls (beginner)")
    CLUE_EASY = ("easy", CategoryGroup.CLUES, "Clue Scrolls (easy)")
    CLUE_MEDIUM = ("medium", CategoryGroup.CLUES, "Clue Scrolls (medium)")
    CLUE_HARD = ("hard", CategoryGroup.CLUES, "Clue Scrolls (hard)")
    CLUE_ELITE = ("elite", CategoryGroup.CLUES, "Clue Scrolls (elite)")
    CLUE_MASTER = ("master", CategoryGroup.CLUES, "Clue Scrolls (master)")

    LEAGUE_POINTS = ("leaguePoints", CategoryGroup.ACTIVITIES, "League Points")
    BOUNTY_HUNTER = ("bountyHunter", CategoryGroup.ACTIVITIES, "Bounty Hunter - Hunter")
    BOUNTY_HUNTER_ROGUE = ("bountyHunterRogue", CategoryGroup.ACTIVITIES, "Bounty Hunter - Rogue")
    LAST_MAN_STANDING = ("lastManStanding", CategoryGroup.ACTIVITIES, "LMS - Rank")
    PVP_ARENA = ("pvpArena", CategoryGroup.ACTIVITIES, "PvP Arena - Rank")
    SOUL_WARS_ZEAL = ("soulWarsZeal", CategoryGroup.ACTIVITIES, "Soul Wars Zeal")
    RIFTS_CLOSED = ("riftsClosed", CategoryGroup.ACTIVITIES, "Rifts closed")
    COLOSSEUM_GLORY = ("colosseumGlory", CategoryGroup.ACTIVITIES, "Colosseum Glory")

    def __init__(self, key: str, group: CategoryGroup, label: str) -> None:
        self.key = key
        self.group = group
        self.label = label

    @property
    def baseline(self) -> int:
        return self.group.baseline

    def __str__(self) -> str:
        return self.key

    @classmethod
    def from_key(cls, key: str) -> Category:
        try:
            return _BY_KEY[key]
        except KeyError:
            raise ValueError(f"Unknown category key: {key!r}") from None

    @classmethod
    def from_label(cls, label: str) -> Category | None:
        return _BY_LABEL.get((label or "").strip().lower())


_BY_GROUP: dict[CategoryGroup, tuple[Category, ...]] = {
    g: tuple(c for c in Category if c.group is g) for g in CategoryGroup
}
_BY_KEY: dict[str, Category] = {c.key: c for c in Category}
_BY_LABEL: dict[str, Category] = {c.label.lower(): c for c in Category}


def group_values(values, group: CategoryGroup) -> dict[Category, int]:
    """Subset of a category-keyed mapping restricted to one group."""
    return {c: v for c, v in values.items() if c.group is group}


__all__ = ["Category", "CategoryGroup", "group_values"]
