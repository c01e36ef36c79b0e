import logging


logger = logging.getLogger(__name__)


# Curated by hand; prices are display strings.
HOT_DEALS = [
    {
        "id": "mtn-1gb-sme",
        "provider": "MTN",
        "plan": "1GB SME",
        "price": "₦260",
        "originalPrice": "₦1,200",
        "validity": "30 Days",
        "color": "#eab308",
        "category": "data",
    },
    {
        "id": "airtel-1.5gb",
        "provider": "Airtel",
        "plan": "1.5GB Data",
        "price": "₦950",
        "originalPrice": "₦1,000",
        "validity": "30 Days",
        "color": "#ef4444",
        "category": "data",
    },
    {
        "id": "glo-2.5gb",
        "provider": "Glo",
        "plan": "2.5GB Data",
        "price": "₦980",
        "originalPrice": "₦1,000",
        "validity": "30 Days",
        "color": "#10b981",
        "category": "data",
    },
    {
        "id": "mtn-2gb-sme",
        "provider": "MTN",
        "plan": "2GB SME",
        "price": "₦520",
        "originalPrice": "₦2,400",
        "validity": "30 Days",
        "color": "#eab308",
        "category": "data",
    },
]


def get_hot_deals() -> dict:
    logger.info("[getHotDeals] Returning curated deals")
    return {"success": True, "deals": [dict(deal) for deal in HOT_DEALS]}
