"""Reference data for Pennsylvania home care"""

# All 67 Pennsylvania counties
PA_COUNTIES = [
    "Adams", "Allegheny", "Armstrong", "Beaver", "Bedford",
    "Berks", "Blair", "Bradford", "Bucks", "Butler",
    "Cambria", "Cameron", "Carbon", "Centre", "Chester",
    "Clarion", "Clearfield", "Clinton", "Columbia", "Crawford",
    "Cumberland", "Dauphin", "Delaware", "Elk", "Erie",
    "Fayette", "Forest", "Franklin", "Fulton", "Greene",
    "Huntingdon", "Indiana", "Jefferson", "Juniata", "Lackawanna",
    "Lancaster", "Lawrence", "Lebanon", "Lehigh", "Luzerne",
    "Lycoming", "McKean", "Mercer", "Mifflin", "Monroe",
    "Montgomery", "Montour", "Northampton", "Northumberland", "Perry",
    "Philadelphia", "Pike", "Potter", "Schuylkill", "Snyder",
    "Somerset", "Sullivan", "Susquehanna", "Tioga", "Union",
    "Venango", "Warren", "Washington", "Wayne", "Westmoreland",
    "Wyoming", "York",
]  # fmt: skip

# PA Medicaid (MA) managed care plans
PA_MEDICAID_PLANS = {
    "amerihealth_caritas": "AmeriHealth Caritas PA",
    "geisinger_chn": "Geisinger Community Health Plan",
    "health_partners": "Health Partners Plans",
    "highmark_wholecare": "Highmark Wholecare",
    "molina": "Molina Healthcare of PA",
    "pa_health_wellness": "PA Health & Wellness",
    "united_community": "United Healthcare Community Plan",
    "upmc_for_you": "UPMC for You",
    "ffs": "Fee-for-Service (FFS / Traditional)",
    "unknown": "I'm not sure",
}

DOC_TYPE_LABELS = {
    "insurance_card": "Insurance Card",
    "id_document": "Photo ID",
    "prior_auth": "Prior Authorization",
    "physician_order": "Physician Order",
    "discharge_summary": "Discharge Summary",
    "care_plan": "Care Plan",
    "other": "Other Document",
}

SWITCH_REASONS = {
    "poor_quality": "Unsatisfied with care quality",
    "staff_consistency": "Inconsistent or unreliable staff",
    "communication": "Poor communication from agency",
    "scheduling": "Scheduling problems",
    "language": "Need care in my language",
    "moved": "I moved to a new area",
    "insurance_change": "My insurance changed",
    "no_agency_yet": "I don't have an agency yet",
    "other": "Other reason",
}

STATUS_LABELS = {
    "submitted": "Submitted",
    "under_review": "Under Review",
    "accepted": "Accepted",
    "denied": "Denied",
    "completed": "Completed",
    "cancelled": "Cancelled",
}
