"""
Sahayak — Opportunity Seed Catalogue
A small, realistic catalogue of jobs, government schemes and education
programs so the HTTP adapter is usable without an external opportunity store.
Loaded into InMemoryOpportunityProvider at startup when
SEED_CATALOGUE_ENABLED is true.
"""

from sahayak.models.opportunity import IMMEDIATE_ASSISTANCE_TAG
from sahayak.services.providers.memory_provider import InMemoryOpportunityProvider, load_opportunities
from sahayak.utils.logger import logger


# ══════════════════════════════════════════
# JOBS
# ══════════════════════════════════════════

JOBS = [
    {"category": "job", "id": "job-electrician-pune", "name": "Electrician", "company": "Shakti Power Services", "location": "Pune", "requirements": ["ITI Electrician certificate", "1 year site experience"], "required_skills": ["wiring", "electrical"], "salary_min": 15000, "salary_max": 22000, "education_levels": ["10th", "iti"], "phone": "+912012345678", "description": "Residential and commercial wiring, fault finding and panel maintenance."},
    {"category": "job", "id": "job-delivery-mumbai", "name": {"default": "Delivery Partner", "alternate": "डिलीवरी पार्टनर"}, "company": "QuickKart Logistics", "location": "Mumbai", "requirements": ["Two-wheeler licence", "Smartphone"], "required_skills": ["driving"], "salary_min": 12000, "salary_max": 25000, "tags": [IMMEDIATE_ASSISTANCE_TAG], "keywords": ["delivery", "driving"], "application_url": "https://quickkart.example.in/join", "description": "Same-week joining. Weekly payouts."},
    {"category": "job", "id": "job-data-entry-remote", "name": "Data Entry Operator", "company": "Sahaj Digital Services", "location": "Remote", "requirements": ["Typing 30 wpm", "Basic computer knowledge"], "required_skills": ["typing", "computer"], "salary_min": 10000, "salary_max": 15000, "education_levels": ["12th", "graduate"], "website": "https://sahajdigital.example.in"},
    {"category": "job", "id": "job-tailor-jaipur", "name": "Tailor", "company": "Rangrez Garments", "location": "Jaipur", "requirements": ["Own sewing experience"], "required_skills": ["tailoring", "stitching"], "salary_min": 9000, "salary_max": 14000, "keywords": ["garments"], "phone": "+911412345678"},
    {"category": "job", "id": "job-welder-pune", "name": "Welder", "company": "Deccan Fabricators", "location": "Pune", "requirements": ["ITI Welder certificate"], "required_skills": ["welding"], "salary_min": 16000, "salary_max": 24000, "education_levels": ["iti"]},
    {"category": "job", "id": "job-farm-helper-nashik", "name": {"default": "Farm Helper", "alternate": "खेत सहायक"}, "company": "Godavari Agro", "location": "Nashik", "requirements": ["Physically fit"], "required_skills": ["farming"], "salary_min": 8000, "salary_max": 11000, "tags": [IMMEDIATE_ASSISTANCE_TAG], "keywords": ["agriculture"]},
]


# ══════════════════════════════════════════
# GOVERNMENT SCHEMES
# ══════════════════════════════════════════

SCHEMES = [
    {"category": "scheme", "id": "scheme-pm-kisan", "name": {"default": "PM-KISAN Samman Nidhi", "alternate": "पीएम-किसान सम्मान निधि"}, "location": "Central", "ministry": "Ministry of Agriculture", "benefits": {"default": "Rs. 6,000 per year in 3 instalments of Rs. 2,000 each", "alternate": "हर साल 6,000 रुपये, 2,000 रुपये की 3 किस्तों में"}, "documents_required": ["Aadhaar", "Land records", "Bank passbook"], "application_process": "Register at pmkisan.gov.in or the nearest Common Service Centre.", "criteria": {"age": {"min": 18}}, "keywords": ["farmer", "agriculture", "income support"], "website": "https://pmkisan.gov.in"},
    {"category": "scheme", "id": "scheme-pmegp", "name": "PM Employment Generation Programme", "location": "Central", "ministry": "Ministry of MSME", "benefits": "15-35% subsidy on project cost for new micro enterprises", "documents_required": ["Aadhaar", "Project report", "Education certificate"], "application_process": "Apply online on the KVIC PMEGP portal.", "criteria": {"age": {"min": 18}, "education": ["8th", "10th", "12th", "iti", "graduate"]}, "keywords": ["business", "self-employment", "loan"], "website": "https://www.kviconline.gov.in"},
    {"category": "scheme", "id": "scheme-mgnrega", "name": {"default": "MGNREGA Job Card", "alternate": "मनरेगा जॉब कार्ड"}, "location": "Central", "ministry": "Ministry of Rural Development", "benefits": "100 days of guaranteed wage employment per household per year", "documents_required": ["Aadhaar", "Address proof", "Photograph"], "application_process": "Apply at the Gram Panchayat office.", "criteria": {"age": {"min": 18}, "employment_status": "unemployed"}, "tags": [IMMEDIATE_ASSISTANCE_TAG], "keywords": ["rural", "wage", "employment"], "website": "https://nrega.nic.in"},
    {"category": "scheme", "id": "scheme-ujjwala", "name": "PM Ujjwala Yojana", "location": "Central", "ministry": "Ministry of Petroleum", "benefits": "Free LPG connection with first refill and stove", "documents_required": ["Aadhaar", "BPL ration card", "Bank passbook"], "application_process": "Apply at the nearest LPG distributor.", "criteria": {"gender": ["female"], "age": {"min": 18}, "income": {"max": 100000}}, "keywords": ["lpg", "women"], "website": "https://www.pmuy.gov.in"},
    {"category": "scheme", "id": "scheme-stand-up-india", "name": "Stand-Up India", "location": "Central", "ministry": "Ministry of Finance", "benefits": "Bank loans between Rs. 10 lakh and Rs. 1 crore for a greenfield enterprise", "documents_required": ["Aadhaar", "Caste certificate", "Project report"], "application_process": "Apply through standupmitra.in or a scheduled commercial bank branch.", "criteria": {"age": {"min": 18}, "caste": ["SC", "ST"]}, "keywords": ["business", "loan"], "website": "https://www.standupmitra.in"},
    {"category": "scheme", "id": "scheme-maha-berojgari-bhatta", "name": "Maharashtra Unemployment Allowance", "location": "Maharashtra", "ministry": "Government of Maharashtra", "benefits": "Monthly allowance of Rs. 5,000 while seeking work", "documents_required": ["Domicile certificate", "Education certificate"], "application_process": "Register on the Mahaswayam portal.", "criteria": {"age": [21, 35], "employment_status": "unemployed", "location": ["Pune", "Mumbai", "Nashik", "Nagpur"]}, "tags": [IMMEDIATE_ASSISTANCE_TAG], "keywords": ["allowance", "unemployment"], "website": "https://rojgar.mahaswayam.gov.in"},
]


# ══════════════════════════════════════════
# EDUCATION & SKILL PROGRAMS
# ══════════════════════════════════════════

PROGRAMS = [
    {"category": "program", "id": "program-pmkvy-electrician", "name": {"default": "PMKVY Electrician Training", "alternate": "पीएमकेवीवाई इलेक्ट्रीशियन प्रशिक्षण"}, "institution": "Skill India Centre, Pune", "location": "Pune", "duration": "3 months", "fees": 0, "scholarship_available": True, "criteria": {"age": {"min": 18, "max": 45}}, "keywords": ["electrical", "wiring", "skill"], "website": "https://www.pmkvyofficial.org"},
    {"category": "program", "id": "program-diploma-computer", "name": "Diploma in Computer Applications", "institution": "Government Polytechnic, Mumbai", "location": "Mumbai", "duration": "1 year", "fees": 12000, "scholarship_available": True, "criteria": {"education": ["12th", "graduate"]}, "education_levels": ["12th", "graduate"], "keywords": ["computer", "typing"], "deadline": "2099-06-30"},
    {"category": "program", "id": "program-ddu-gky", "name": "DDU-GKY Placement-Linked Training", "institution": "Rural Development Training Centre", "location": "All India", "duration": "6 months", "fees": 0, "scholarship_available": False, "criteria": {"age": [15, 35], "income": {"max": 250000}}, "tags": [IMMEDIATE_ASSISTANCE_TAG], "keywords": ["placement", "rural", "skill"], "website": "https://ddugky.gov.in"},
    {"category": "program", "id": "program-tailoring-jaipur", "name": "Certificate in Tailoring", "institution": "Jan Shikshan Sansthan, Jaipur", "location": "Jaipur", "duration": "4 months", "fees": 1500, "scholarship_available": True, "criteria": {"gender": ["female"]}, "keywords": ["tailoring", "stitching"]},
]


ALL_OPPORTUNITIES = JOBS + SCHEMES + PROGRAMS


def seed_catalogue(provider: InMemoryOpportunityProvider | None = None) -> InMemoryOpportunityProvider:
    """Load the catalogue into a provider (a new one unless given)."""
    provider = provider or InMemoryOpportunityProvider()
    opportunities = load_opportunities(ALL_OPPORTUNITIES)
    for opportunity in opportunities:
        provider.add(opportunity)

    logger.info(
        f"🌱 Seeded catalogue: {len(JOBS)} jobs, {len(SCHEMES)} schemes, {len(PROGRAMS)} programs"
    )
    return provider
