"""
Catalog Data for the Marketplace Client

This module contains the fixed vocabularies shown in the UI: ad categories,
ad statuses, feed time windows and sort options.
Kept apart from settings.py to separate data from configuration logic.
"""

# Ad categories (id -> label)
CATEGORIES = {
    "eletronicos": "Eletrônicos",
    "moveis": "Móveis",
    "veiculos": "Veículos",
    "imoveis": "Imóveis",
    "moda": "Moda",
    "servicos": "Serviços",
    "esportes": "Esportes",
    "casa_jardim": "Casa e Jardim",
    "animais": "Animais",
    "empregos": "Empregos",
    "outros": "Outros",
}

# Ad lifecycle statuses
STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"
STATUS_SOLD = "sold"
STATUS_PENDING_ACTIVATION = "pending_activation"

AD_STATUSES = [
    STATUS_ACTIVE,
    STATUS_PAUSED,
    STATUS_SOLD,
    STATUS_PENDING_ACTIVATION,
]

# Trailing windows for the "published within" filter, in hours
TIME_FILTER_WINDOWS = {
    "all": None,
    "24h": 24,
    "3d": 72,
    "7d": 168,
}

TIME_FILTER_LABELS = {
    "all": "Qualquer período",
    "24h": "Últimas 24 horas",
    "3d": "Últimos 3 dias",
    "7d": "Últimos 7 dias",
}

# Sort options for the feed
SORT_RECENT = "recent"
SORT_PRICE_ASC = "price_asc"
SORT_PRICE_DESC = "price_desc"
SORT_VIEWS = "views"

SORT_LABELS = {
    SORT_RECENT: "Mais recentes",
    SORT_PRICE_ASC: "Menor preço",
    SORT_PRICE_DESC: "Maior preço",
    SORT_VIEWS: "Mais visualizados",
}
