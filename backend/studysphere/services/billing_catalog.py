# studysphere/services/billing_catalog.py
from ..schemas.billing import (
    Catalog,
    Feature,
    FeatureItem,
    FeatureType,
    Interval,
    PriceItem,
    Product
)

MESSAGES = Feature(id="messages", name="AI Messages", type=FeatureType.SINGLE_USE)
PRIORITY_RESPONSE = Feature(id="priority_response", name="Priority Response", type=FeatureType.BOOLEAN)
ADVANCED_FLASHCARDS = Feature(id="advanced_flashcards", name="Advanced Flashcards", type=FeatureType.BOOLEAN)
PDF_UPLOAD = Feature(id="pdf_upload", name="PDF Upload", type=FeatureType.BOOLEAN)
CROSS_SESSION_MEMORY = Feature(id="cross_session_memory", name="Cross-Session Memory", type=FeatureType.BOOLEAN)
DEEP_THINKING_MODE = Feature(id="deep_thinking_mode", name="Deep Thinking Mode", type=FeatureType.BOOLEAN)
INTERVIEW_PREP = Feature(id="interview_prep", name="Interview Prep", type=FeatureType.BOOLEAN)
PRIORITY_SUPPORT = Feature(id="priority_support", name="Priority Support", type=FeatureType.BOOLEAN)
ADVANCED_ANALYTICS = Feature(id="advanced_analytics", name="Advanced Analytics", type=FeatureType.BOOLEAN)

FEATURES = [
    MESSAGES,
    PRIORITY_RESPONSE,
    ADVANCED_FLASHCARDS,
    PDF_UPLOAD,
    CROSS_SESSION_MEMORY,
    DEEP_THINKING_MODE,
    INTERVIEW_PREP,
    PRIORITY_SUPPORT,
    ADVANCED_ANALYTICS,
]

STUDENT_STARTER = Product(
    id="student_starter",
    name="Student Starter",
    is_default=True,
    items=[
        FeatureItem(feature_id=MESSAGES.id, included_usage=50, interval=Interval.MONTH),
    ]
)

STUDY_PRO = Product(
    id="study_pro",
    name="Study Pro",
    items=[
        PriceItem(price=9.99, interval=Interval.MONTH),
        FeatureItem(feature_id=MESSAGES.id, included_usage=500, interval=Interval.MONTH),
        FeatureItem(feature_id=PRIORITY_RESPONSE.id),
        FeatureItem(feature_id=ADVANCED_FLASHCARDS.id),
        FeatureItem(feature_id=PDF_UPLOAD.id),
        FeatureItem(feature_id=CROSS_SESSION_MEMORY.id),
    ]
)

STUDY_ELITE = Product(
    id="study_elite",
    name="Study Elite",
    items=[
        PriceItem(price=19.99, interval=Interval.MONTH),
        FeatureItem(feature_id=PRIORITY_RESPONSE.id),
        FeatureItem(feature_id=ADVANCED_FLASHCARDS.id),
        FeatureItem(feature_id=PDF_UPLOAD.id),
        FeatureItem(feature_id=CROSS_SESSION_MEMORY.id),
        FeatureItem(feature_id=DEEP_THINKING_MODE.id),
        FeatureItem(feature_id=INTERVIEW_PREP.id),
        FeatureItem(feature_id=PRIORITY_SUPPORT.id),
        FeatureItem(feature_id=ADVANCED_ANALYTICS.id),
    ]
)

PRODUCTS = [STUDENT_STARTER, STUDY_PRO, STUDY_ELITE]


def build_catalog() -> Catalog:
    known = {f.id for f in FEATURES}
    for product in PRODUCTS:
        unknown = [f for f in product.feature_ids if f not in known]
        if unknown:
            raise ValueError(f"Product {product.id} references unknown features: {unknown}")
    return Catalog(features=FEATURES, products=PRODUCTS)


CATALOG = build_catalog()
