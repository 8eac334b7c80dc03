"""
Content filter and classifier.

Drops obituary/death-notice items and assigns each remaining candidate one
category from keyword lists. Matching is a plain lower-cased substring test.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .sources.base import CandidateArticle

# French then Malagasy. Bare "rip" and "a péri" are left out: as substrings they
# hit "description" and "la période".
BLOCKED_KEYWORDS = [
    'nécrologie', 'necrologie', 'décès', 'deces', 'décédé', 'decede',
    'mort de', 'est mort', 'est décédé', 'est décédée',
    'obsèques', 'obseques', 'funérailles', 'funerailles',
    'enterrement', 'inhumation', 'hommage posthume', 'disparition de',
    'nous quitte', "a rendu l'âme", 'dernier adieu', 'repose en paix',
    'r.i.p', 'in memoriam', 'en mémoire de', 'condoléances',
    'deuil national', 'deuil', 'veillée funèbre', 'cercueil',
    'maty', 'nodimandry', 'niala aina', 'lasa nodimandry', 'namoy ny ainy',
    'fandevenana', 'fasana', 'fitsaboana ny maty', 'faty', 'fahafatesana',
    'maty ny', 'namana maty', 'nalahelo', 'fisaorana faty',
    'famangiana faty', 'filazan-doza', 'fahoriana', 'alahelo',
]

POLITIQUE_KEYWORDS = [
    'politique', 'gouvernement', 'président', 'ministre', 'premier ministre',
    'assemblée', 'élection', 'vote', 'parti', 'député', 'sénat', 'sénateur',
    'rajoelina', 'andry', 'hvm', 'tim', 'arema', 'constitution', 'loi',
    'décret', 'réforme', 'campagne', 'scrutin', 'urne', 'mandat', 'pouvoir',
    'opposition', 'majorité', 'coalition', 'diplomatie', 'ambassadeur',
    'état', 'nation', 'république', 'parlement', 'conseil des ministres',
    'bianco', 'pac', 'cst', 'hcc', 'ceni', 'irmar', 'pds',
]

SOCIETE_KEYWORDS = [
    'société', 'social', 'population', 'citoyen', 'malgache', 'santé',
    'éducation', 'école', 'université', 'hôpital', 'médecin', 'covid',
    'pauvreté', 'faim', 'sécurité', 'criminalité', 'vol', 'insécurité',
    'vie quotidienne', 'famille', 'jeune', 'femme', 'enfant', 'droits',
    'travail', 'emploi', 'chômage', 'grève', 'manifestation', 'protestation',
    'transport', 'route', 'taxi-be', 'jirama', 'coupure', 'délestage',
    'eau', 'électricité', 'logement', 'habitat', 'bidonville', 'quartier',
    'antananarivo', 'tana', 'toamasina', 'mahajanga', 'fianarantsoa', 'toliara',
    'commune', 'fokontany', 'région', 'district', 'riz', 'vary', 'kere',
]

# Checked in this order after the two priority categories
SECONDARY_CATEGORY_KEYWORDS: List[Tuple[str, List[str]]] = [
    ('economie', ['économie', 'économique', 'ariary', 'banque', 'commerce', 'investissement',
                  'marché', 'prix', 'inflation', 'pib', 'exportation', 'importation']),
    ('sport', ['sport', 'football', 'barea', 'match', 'championnat', 'athlète', 'équipe',
               'victoire', 'basket', 'rugby', 'jeux', 'olympique']),
    ('culture', ['culture', 'culturel', 'artiste', 'musique', 'festival', 'tradition',
                 'patrimoine', 'art', 'cinéma', 'théâtre', 'hira gasy', 'vakodrazana']),
    ('international', ['international', 'monde', 'étranger', 'onu', 'union africaine', 'sadc',
                       'coi', 'france', 'chine', 'usa', 'europe']),
    ('environnement', ['environnement', 'climat', 'cyclone', 'forêt', 'biodiversité', 'écologie',
                       'nature', 'inondation', 'sécheresse', 'lémuriens']),
    ('technologie', ['technologie', 'numérique', 'digital', 'internet', 'startup', 'innovation',
                     'mobile', 'application', 'orange', 'telma', 'airtel']),
]

DEFAULT_CATEGORY = 'societe'
PRIORITY_CATEGORIES = frozenset({'politique', 'societe'})

CATEGORY_DISPLAY_NAMES: Dict[str, str] = {
    'politique': 'Politique',
    'economie': 'Économie',
    'sport': 'Sport',
    'culture': 'Culture',
    'societe': 'Société',
    'international': 'International',
    'environnement': 'Environnement',
    'technologie': 'Technologie',
}

CATEGORY_CONTEXT: Dict[str, str] = {
    'politique': "politique malgache, gouvernement, élections, assemblée nationale, actualité politique de Madagascar",
    'economie': "économie de Madagascar, ariary, commerce, investissements, croissance économique",
    'sport': "sport malgache, football, Barea, athlétisme, compétitions sportives",
    'culture': "culture malgache, traditions, art, musique, patrimoine culturel",
    'societe': "société malgache, vie quotidienne, santé, éducation, problèmes sociaux",
    'international': "relations internationales, diplomatie, Madagascar dans le monde",
    'environnement': "environnement à Madagascar, biodiversité, cyclones, climat",
    'technologie': "technologie, numérique, innovation, startups à Madagascar",
}
DEFAULT_CONTEXT = "actualités de Madagascar"


def _haystack(title: Optional[str], description: Optional[str]) -> str:
    return f"{title or ''} {description or ''}".lower()


def _matches_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_blocked(title: Optional[str], description: Optional[str]) -> bool:
    """True when title or description contains any death-notice term."""
    return _matches_any(_haystack(title, description), BLOCKED_KEYWORDS)


def detect_category(title: Optional[str], description: Optional[str]) -> str:
    """
    Pick a category key for a feed item.

    Politics wins over society, society wins over every secondary category,
    and secondary categories are tried in their declared order. Items that
    match nothing are filed under society.
    """
    text = _haystack(title, description)

    if _matches_any(text, POLITIQUE_KEYWORDS):
        return 'politique'
    if _matches_any(text, SOCIETE_KEYWORDS):
        return 'societe'

    for category, keywords in SECONDARY_CATEGORY_KEYWORDS:
        if _matches_any(text, keywords):
            return category

    return DEFAULT_CATEGORY


def category_display_name(category: str) -> Optional[str]:
    return CATEGORY_DISPLAY_NAMES.get(category)


def category_key_for_name(display_name: Optional[str]) -> str:
    for key, name in CATEGORY_DISPLAY_NAMES.items():
        if name == display_name:
            return key
    return DEFAULT_CATEGORY


def category_context(category: str) -> str:
    return CATEGORY_CONTEXT.get(category, DEFAULT_CONTEXT)


def merge_and_sort(candidates: Iterable[CandidateArticle]) -> List[CandidateArticle]:
    """Priority categories first, newest first within each group."""
    ordered = sorted(candidates, key=lambda c: c.published_at, reverse=True)
    # sort is stable, so the date order survives inside each group
    return sorted(ordered, key=lambda c: c.category not in PRIORITY_CATEGORIES)
