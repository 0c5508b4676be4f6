# Quoting/pricing.py

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

# Ordre canonique des niveaux de séniorité (affichage des options)
SENIORITY_PRIORITY: Tuple[str, ...] = (
    "Trainee", "Jr", "Junior", "Ssr", "Semisenior", "Med",
    "Sr", "Senior", "Expert", "Lead", "Manager",
)

# Vocabulaire du formulaire -> vocabulaire stocké dans la table de tarifs
FREQUENCY_LABELS = {
    "daily": "Diaria",
    "weekly": "Semanal",
    "monthly": "Mensual",
    "realtime": "Bajo Demanda",
}
COMPLEXITY_LABELS = {
    "low": "Baja",
    "medium": "Media",
    "high": "Alta",
}

# Prix mensuels par défaut des profils quand la table ne les couvre pas
DEFAULT_ROLE_PRICES = {
    "Data / Operations Analyst": 2500.0,
    "Data Scientist": 5100.0,
    "BI Visualization Developer": 4128.0,
    "Data Engineer": 4950.0,
    "Power App / Streamlit Developer": 4000.0,
    "React Developer": 4500.0,
    "Low Code Developer": 4000.0,
}

DEFAULT_CAPABILITIES: Tuple[str, ...] = ("Jr", "Med", "Sr", "Expert")


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


_DEFAULT_PRICES_BY_KEY = {_norm(name): price for name, price in DEFAULT_ROLE_PRICES.items()}


def default_role_price(role_name: str) -> Optional[float]:
    """Prix par défaut d'un profil, nom comparé sans casse ni espaces."""
    return _DEFAULT_PRICES_BY_KEY.get(_norm(role_name))



def resolve_price(
    role_name: str,
    level: str,
    rates: Iterable,
    default_price: Optional[float] = None,
    multipliers: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Prix mensuel d'un profil (role_name, level).

    1) entrée exacte de la table (service insensible à la casse, niveau identique)
       avec un prix non nul ;
    2) sinon default_price * multipliers[level] (1.0 si niveau inconnu),
       uniquement si les deux sont fournis ;
    3) sinon 0.0 : niveau indisponible pour ce rôle.

    Une entrée à prix 0 est traitée comme absente.
    """
    wanted = _norm(role_name)
    for rate in rates:
        if _norm(rate.service) == wanted and rate.complexity == level:
            price = float(rate.base_price or 0)
            if price:
                return price

    if default_price is not None and multipliers is not None:
        return float(default_price) * float(multipliers.get(level, 1.0))

    return 0.0


def _priority(level: str) -> int:
    wanted = _norm(level)
    for idx, p in enumerate(SENIORITY_PRIORITY):
        if p.lower() == wanted:
            return idx
    return 99


def sort_levels(levels: Iterable[str]) -> List[str]:
    return sorted(levels, key=_priority)


def seniority_options(
    role_name: str,
    rates: Sequence,
    capabilities: Sequence[str] = DEFAULT_CAPABILITIES,
    default_price: Optional[float] = None,
    multipliers: Optional[Mapping[str, float]] = None,
) -> List[Tuple[str, float]]:
    """
    Options (niveau, prix) proposées pour un rôle.

    Si la table contient des entrées pour le rôle, seuls ces niveaux sont
    proposés ; sinon on retombe sur `capabilities`. Les prix nuls sont
    supprimés : une liste vide signifie "profil non disponible".
    """
    wanted = _norm(role_name)
    db_levels = []
    for rate in rates:
        if _norm(rate.service) == wanted and rate.complexity not in db_levels:
            db_levels.append(rate.complexity)

    levels = db_levels or list(capabilities)
    options = []
    for level in sort_levels(levels):
        price = resolve_price(role_name, level, rates, default_price, multipliers)
        if price > 0:
            options.append((level, price))
    return options


def find_service_rate(rates: Sequence, service: str, frequency: str, complexity: str) -> float:
    """
    Prix unitaire mensuel d'un service (base_price * multiplier).

    `frequency` / `complexity` sont les valeurs du formulaire
    (daily/weekly/..., low/medium/high). Repli progressif :
    service+fréquence+complexité, puis service+complexité, puis service seul.
    """
    target_freq = FREQUENCY_LABELS.get(frequency, "Diaria")
    target_comp = COMPLEXITY_LABELS.get(complexity, "Media")
    needle = _norm(service)
    if not needle:
        return 0.0

    candidates = [r for r in rates if needle in _norm(r.service)]

    match = next(
        (r for r in candidates if r.frequency == target_freq and r.complexity == target_comp),
        None,
    )
    if match is None:
        match = next((r for r in candidates if r.complexity == target_comp), None)
    if match is None and candidates:
        match = candidates[0]

    if match is None:
        return 0.0
    return float(match.base_price or 0) * float(match.multiplier or 0)
