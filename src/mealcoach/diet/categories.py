"""
MealCoach - Ingredient Category Matching.

Maps free-text ingredient names (English or Dutch) to diet categories such
as grains, dairy or nightshades.

Matching is deliberately loose: a name matches a category term when the two
tokens are equal OR either one contains the other. That keeps "kipfilet"
matching "kip" and "tomaten" matching "tomaat", but short terms produce
false positives ("ei" inside "geitenkaas"). This is a known precision
trade-off; swap in a stricter CategoryMatcher rather than editing call sites.

Exceptions are consulted BEFORE the general rule. A name that matches an
exception pattern for a category never belongs to that category, whatever
the substring match says (sweet potato is not a nightshade).
"""

from collections.abc import Iterable, Mapping
from typing import Literal, Protocol, runtime_checkable

from mealcoach.tools.normalize import normalize_ingredient_token


# =============================================================================
# Static term lists (normalized tokens, English + Dutch)
# =============================================================================

INGREDIENT_CATEGORY_MAP: dict[str, list[str]] = {
    "grains": [
        "wheat", "rice", "oats", "barley", "rye", "quinoa", "corn", "buckwheat",
        "millet", "spelt", "kamut", "amaranth", "teff", "sorghum", "bulgur",
        "couscous", "farro", "freekeh", "wheat_berries",
        "tarwe", "rijst", "haver", "havermout", "gerst", "rogge", "mais",
        "boekweit", "gierst", "spelt", "bulgur",
    ],
    "dairy": [
        "milk", "cheese", "yogurt", "butter", "cream", "sour_cream", "kefir",
        "ghee", "buttermilk", "cottage_cheese", "ricotta", "mozzarella",
        "cream_cheese", "mascarpone",
        "melk", "kaas", "yoghurt", "boter", "room", "zure_room", "karnemelk",
        "kwark", "slagroom", "roomkaas",
    ],
    "legumes": [
        "beans", "lentils", "chickpeas", "peas", "soy", "tofu", "tempeh",
        "peanuts", "black_beans", "kidney_beans", "pinto_beans", "navy_beans",
        "lima_beans", "fava_beans", "edamame", "mung_beans", "adzuki_beans",
        "bonen", "linzen", "kikkererwten", "erwten", "soja", "pinda",
        "kidneybonen", "tuinbonen", "sojabonen",
    ],
    "nightshades": [
        "tomato", "potato", "eggplant", "bell_pepper", "chili_pepper",
        "paprika", "cayenne", "goji_berry", "tomatillo", "ground_cherry",
        "pepino",
        "tomaat", "tomaten", "aardappel", "aubergine", "chilipeper",
        "cayennepeper", "gojibes",
    ],
    "processed_sugar": [
        "sugar", "sucrose", "fructose", "high_fructose_corn_syrup",
        "cane_sugar", "brown_sugar", "powdered_sugar", "maple_syrup", "agave",
        "corn_syrup", "honey",
        "suiker", "rietsuiker", "basterdsuiker", "poedersuiker", "ahornsiroop",
        "glucosestroop", "honing",
    ],
    "meat": [
        "beef", "pork", "lamb", "veal", "bacon", "sausage", "ham", "prosciutto",
        "rundvlees", "varkensvlees", "lamsvlees", "kalfsvlees", "spek", "worst",
        "ham",
    ],
    "red_meat": [
        "beef", "lamb", "veal", "bison", "venison", "elk", "buffalo",
        "rundvlees", "lamsvlees", "kalfsvlees", "hertenvlees",
    ],
    "white_meat": [
        "chicken", "turkey", "duck", "goose", "pheasant", "quail",
        "kip", "kalkoen", "eend", "gans", "fazant", "kwartel",
    ],
    "poultry": [
        "chicken", "turkey", "duck", "goose", "pheasant", "quail", "cornish_hen",
        "kip", "kalkoen", "eend", "gans", "fazant", "kwartel",
    ],
    "fermented_foods": [
        "sauerkraut", "kimchi", "kombucha", "miso", "tempeh", "kefir", "yogurt",
        "sourdough", "pickles", "fermented_vegetables", "natto",
        "zuurkool", "zuurdesem", "yoghurt", "augurk",
    ],
    "aged_cheese": [
        "parmesan", "blue_cheese", "cheddar", "gouda", "swiss", "brie",
        "camembert", "roquefort", "stilton", "manchego", "pecorino", "asiago",
        "gruyere",
        "belegen_kaas", "oude_kaas", "parmezaan", "goudse",
    ],
    "shellfish": [
        "shrimp", "lobster", "crab", "mussel", "oyster", "clam", "scallop",
        "crayfish", "prawn", "langoustine", "abalone", "conch",
        "garnalen", "kreeft", "krab", "mosselen", "oesters", "sint_jakobsschelp",
        "rivierkreeft",
    ],
    "starches": [
        "potato", "corn", "rice", "wheat", "barley", "oats", "quinoa",
        "sweet_potato", "yam", "taro", "cassave", "cassava", "plantain",
        "breadfruit",
        "aardappel", "mais", "rijst", "zoete_aardappel", "bakbanaan",
    ],
    "organ_meats": [
        "liver", "heart", "kidney", "brain", "tongue", "sweetbreads", "tripe",
        "gizzard", "pate", "foie_gras",
        "lever", "hart", "nier", "tong", "zwezerik", "pens",
    ],
    "seaweed": [
        "seaweed", "kelp", "nori", "dulse", "wakame", "kombu", "arame",
        "hijiki", "irish_moss", "sea_lettuce",
        "zeewier", "zeesla",
    ],
    "leafy_vegetables": [
        "spinach", "kale", "lettuce", "chard", "collard_greens", "arugula",
        "bok_choy", "cabbage", "watercress", "mustard_greens", "turnip_greens",
        "beet_greens", "dandelion_greens",
        "spinazie", "boerenkool", "sla", "snijbiet", "rucola", "paksoi",
        "kool", "waterkers", "andijvie",
    ],
    "sulfur_vegetables": [
        "broccoli", "cauliflower", "cabbage", "brussels_sprouts", "onion",
        "garlic", "leek", "shallot", "scallion", "chive", "asparagus",
        "kohlrabi",
        "bloemkool", "spruitjes", "ui", "knoflook", "prei", "sjalot",
        "bosui", "bieslook", "asperge", "koolrabi",
    ],
    "colored_vegetables": [
        "carrot", "beet", "bell_pepper", "sweet_potato", "pumpkin", "squash",
        "tomato", "red_cabbage", "purple_cabbage", "radish", "turnip",
        "rutabaga",
        "wortel", "biet", "paprika", "zoete_aardappel", "pompoen", "tomaat",
        "rode_kool", "radijs", "raap", "koolraap",
    ],
    "nuts": [
        "almond", "walnut", "cashew", "pistachio", "pecan", "hazelnut",
        "brazil_nut", "macadamia", "pine_nut", "peanut",
        "amandel", "walnoot", "cashewnoot", "pistache", "pecannoot",
        "hazelnoot", "paranoot", "pijnboompit", "pinda",
    ],
    "seeds": [
        "sesame", "sunflower", "pumpkin", "chia", "flax", "hemp", "poppy",
        "quinoa",
        "sesamzaad", "zonnebloempit", "pompoenpit", "lijnzaad", "hennepzaad",
        "maanzaad",
    ],
    "eggs": [
        "egg", "egg_yolk", "egg_white", "duck_egg", "quail_egg",
        "ei", "eieren", "eidooier", "eiwit", "kippenei",
    ],
    "alcohol": [
        "wine", "beer", "spirits", "liquor", "whiskey", "vodka", "rum", "gin",
        "tequila", "sake", "champagne", "cider",
        "wijn", "bier", "sterke_drank", "jenever",
    ],
}

# Patterns that force a negative result for a category, checked first.
CATEGORY_EXCEPTIONS: dict[str, list[str]] = {
    "nightshades": [
        "sweet_potato",
        "zoete_aardappel",
        "aardappel_zoete",  # NEVO naming: "Aardappel, zoete, gekookt"
        "bataat",
    ],
}

HIGH_HISTAMINE_CATEGORIES = ["fermented_foods", "aged_cheese", "shellfish"]

HIGH_HISTAMINE_INGREDIENTS = [
    "spinach", "tomato", "sauerkraut", "kimchi", "kombucha", "canned_tuna",
    "canned_salmon", "shrimp", "lobster", "crab",
    "spinazie", "tomaat", "zuurkool", "tonijn_in_blik", "garnalen",
]


# =============================================================================
# Matcher interface
# =============================================================================


@runtime_checkable
class CategoryMatcher(Protocol):
    """Anything that can answer category membership for an ingredient name."""

    def matches_category(self, name: str, category: str) -> bool:
        ...

    def categories_of(self, name: str) -> list[str]:
        ...

    def is_in_category(self, name: str, categories: Iterable[str]) -> bool:
        ...


def _loose_match(token: str, term: str) -> bool:
    return token == term or term in token or token in term


class SubstringCategoryMatcher:
    """
    Default matcher: two-way substring matching over static + DB term lists.

    Args:
        category_map: Base term lists (defaults to INGREDIENT_CATEGORY_MAP)
        extra_terms: Additional terms per category, e.g. loaded from the
            ingredient_category_items table. Merged after the static terms.
        exceptions: Per-category patterns that force a negative result
    """

    def __init__(
        self,
        category_map: Mapping[str, Iterable[str]] | None = None,
        extra_terms: Mapping[str, Iterable[str]] | None = None,
        exceptions: Mapping[str, Iterable[str]] | None = None,
    ):
        base = INGREDIENT_CATEGORY_MAP if category_map is None else category_map
        self._terms: dict[str, list[str]] = {}
        for category, terms in base.items():
            self._add_terms(category, terms)
        for category, terms in (extra_terms or {}).items():
            self._add_terms(category, terms)

        exc = CATEGORY_EXCEPTIONS if exceptions is None else exceptions
        self._exceptions = {
            category: [p for p in (normalize_ingredient_token(x) for x in patterns) if p]
            for category, patterns in exc.items()
        }

    def _add_terms(self, category: str, terms: Iterable[str]) -> None:
        existing = self._terms.setdefault(category, [])
        for term in terms:
            token = normalize_ingredient_token(term)
            if token and token not in existing:
                existing.append(token)

    @property
    def categories(self) -> list[str]:
        return list(self._terms)

    def terms_for(self, category: str) -> list[str]:
        return list(self._terms.get(category, []))

    def is_exception(self, name: str, category: str) -> bool:
        """True when the name hits an exception pattern for the category."""
        token = normalize_ingredient_token(name)
        return any(p in token for p in self._exceptions.get(category, []))

    def _token_matches(self, token: str, category: str) -> bool:
        if not token:
            return False
        if any(p in token for p in self._exceptions.get(category, [])):
            return False
        return any(_loose_match(token, term) for term in self._terms.get(category, []))

    def matches_category(self, name: str, category: str) -> bool:
        return self._token_matches(normalize_ingredient_token(name), category)

    def categories_of(self, name: str) -> list[str]:
        token = normalize_ingredient_token(name)
        return [c for c in self._terms if self._token_matches(token, c)]

    def is_in_category(self, name: str, categories: Iterable[str]) -> bool:
        token = normalize_ingredient_token(name)
        return any(self._token_matches(token, c) for c in categories)


# =============================================================================
# Module-level API (delegates to the active matcher)
# =============================================================================

_matcher: CategoryMatcher = SubstringCategoryMatcher()


def get_category_matcher() -> CategoryMatcher:
    return _matcher


def set_category_matcher(matcher: CategoryMatcher) -> None:
    """Replace the process-wide matcher (e.g. after loading DB terms)."""
    global _matcher
    _matcher = matcher


def matches_category(name: str, category: str) -> bool:
    """Check if an ingredient matches a category. Unknown category -> False."""
    return _matcher.matches_category(name, category)


def categories_of(name: str) -> list[str]:
    """All categories an ingredient belongs to."""
    return _matcher.categories_of(name)


def is_in_category(name: str, categories: Iterable[str]) -> bool:
    """Check if an ingredient belongs to any of the given categories."""
    return _matcher.is_in_category(name, categories)


def matches_list(name: str, items: Iterable[str]) -> bool:
    """Loose match of an ingredient against an ad-hoc list of names."""
    token = normalize_ingredient_token(name)
    if not token:
        return False
    for item in items:
        item_token = normalize_ingredient_token(item)
        if item_token and _loose_match(token, item_token):
            return True
    return False


def is_nightshade(name: str) -> bool:
    return matches_category(name, "nightshades")


def is_grain(name: str) -> bool:
    return matches_category(name, "grains")


def is_dairy(name: str) -> bool:
    return matches_category(name, "dairy")


def is_legume(name: str) -> bool:
    return matches_category(name, "legumes")


def is_high_histamine(name: str) -> bool:
    return is_in_category(name, HIGH_HISTAMINE_CATEGORIES) or matches_list(
        name, HIGH_HISTAMINE_INGREDIENTS
    )


WahlsVegetableType = Literal["leafy", "sulfur", "colored", "other"]


def categorize_wahls_vegetable(name: str) -> WahlsVegetableType:
    """Bucket a vegetable for the Wahls Paleo 3x3 cup requirement."""
    if matches_category(name, "leafy_vegetables"):
        return "leafy"
    if matches_category(name, "sulfur_vegetables"):
        return "sulfur"
    if matches_category(name, "colored_vegetables"):
        return "colored"
    return "other"
