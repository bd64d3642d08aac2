"""Display labels for association statuses."""

from typing import Optional

from opportunity_engine.utils.constants import (
    OFFER_STATUS_LABELS,
    UNKNOWN_STATUS_LABEL,
    OfferStatus,
)


def find_offer_status(
    status: Optional[int],
    is_public: bool = False,
    is_recommended: bool = False,
) -> dict[str, str]:
    """
    Get the label and color of a status.

    The to-process bucket reads "recommended" on recommended associations of
    public offers, and "viewed" on other public offers.
    """
    try:
        offer_status = OfferStatus(status)
    except ValueError:
        return dict(UNKNOWN_STATUS_LABEL)

    entry = OFFER_STATUS_LABELS[offer_status]
    label = entry["label"]
    if offer_status == OfferStatus.TO_PROCESS and is_public:
        label = entry["recommended"] if is_recommended else entry["public"]

    return {"value": str(int(offer_status)), "label": label, "color": entry["color"]}
