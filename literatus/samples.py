"""Seed papers shipped with the application and its methodology vocabulary."""

from literatus.models import Paper

METHODOLOGY_CATEGORIES = [
    "Deep Learning",
    "Machine Learning",
    "Statistical Analysis",
    "Systematic Review",
    "Meta-Analysis",
    "Clinical Trial",
    "Cohort Study",
    "Case-Control",
    "Qualitative",
    "Mixed Methods",
    "Simulation",
    "Natural Language Processing",
]

SAMPLE_RECORDS = [
    {
        "id": 1,
        "title": "Deep Learning Approaches for Rheumatological Disease Classification",
        "authors": ["Chen, L.", "Williams, R.", "Park, J."],
        "year": 2024,
        "journal": "Journal of Medical AI",
        "doi": "10.1234/jmai.2024.001",
        "abstract": (
            "This study presents a novel deep learning framework for classifying "
            "rheumatological diseases from clinical imaging data. Using a modified "
            "ResNet architecture with attention mechanisms, we achieved 94.2% "
            "accuracy on a dataset of 12,000 patient scans."
        ),
        "methodology": [
            "Deep Learning",
            "ResNet",
            "Attention Mechanisms",
            "Image Classification",
        ],
        "keywords": ["rheumatology", "deep learning", "medical imaging", "classification"],
        "citations": 45,
        "status": "read",
    },
    {
        "id": 2,
        "title": "Biomarkers in Early Arthritis: A Systematic Review",
        "authors": ["Martinez, S.", "Thompson, K."],
        "year": 2023,
        "journal": "Rheumatology Reviews",
        "doi": "10.1234/rr.2023.042",
        "abstract": (
            "We conducted a systematic review of 156 studies examining biomarkers "
            "for early detection of inflammatory arthritis. Key findings indicate "
            "that combining CRP, ESR, and anti-CCP antibodies provides the highest "
            "predictive value."
        ),
        "methodology": ["Systematic Review", "Meta-Analysis", "Biomarker Analysis"],
        "keywords": ["arthritis", "biomarkers", "early detection", "systematic review"],
        "citations": 89,
        "notes": "Important for literature review section",
        "status": "read",
    },
    {
        "id": 3,
        "title": "Machine Learning for Treatment Response Prediction in RA",
        "authors": ["Johnson, M.", "Lee, H.", "Brown, A."],
        "year": 2024,
        "journal": "Computational Medicine",
        "doi": "10.1234/cm.2024.015",
        "abstract": (
            "This paper introduces an ensemble machine learning approach to predict "
            "treatment response in rheumatoid arthritis patients. Our model "
            "integrates clinical, genetic, and imaging features to achieve AUC of 0.91."
        ),
        "methodology": [
            "Ensemble Learning",
            "Random Forest",
            "XGBoost",
            "Feature Engineering",
        ],
        "keywords": ["rheumatoid arthritis", "treatment prediction", "machine learning"],
        "citations": 23,
        "status": "unread",
    },
]


def sample_papers() -> list[Paper]:
    """Fresh ``Paper`` objects for the seed records, in display order."""
    return [Paper.model_validate(record) for record in SAMPLE_RECORDS]
