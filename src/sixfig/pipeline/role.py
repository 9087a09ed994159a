# src/sixfig/pipeline/role.py
"""
Classify a free-text job title into seniority, discipline and a canonical
role slug.

    "Sr. Software Engineer (Remote, US)" ->
        normalized_title="Software Engineer", role_slug="senior-software-engineer",
        base_role_slug="software-engineer", seniority="senior",
        discipline="engineering", is_manager=False

Slugs outside CANONICAL_ROLE_SLUGS come back as "" so odd titles never
invent new role pages.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

from sixfig.models import Discipline, NormalizedRole, Seniority

CANONICAL_ROLE_SLUGS = frozenset({
    # engineering
    "software-engineer", "senior-software-engineer", "staff-software-engineer",
    "principal-software-engineer", "frontend-engineer", "senior-frontend-engineer",
    "backend-engineer", "senior-backend-engineer", "full-stack-engineer",
    "senior-full-stack-engineer", "devops-engineer", "senior-devops-engineer",
    "site-reliability-engineer", "platform-engineer", "infrastructure-engineer",
    "cloud-engineer", "security-engineer", "senior-security-engineer", "qa-engineer",
    "senior-qa-engineer", "mobile-engineer", "ios-engineer", "android-engineer",
    "embedded-engineer", "firmware-engineer", "systems-engineer", "network-engineer",
    "database-engineer", "solutions-engineer", "support-engineer", "sales-engineer",
    "software-developer", "web-developer", "software-architect", "solutions-architect",
    "cloud-architect", "tech-lead", "technical-lead", "team-lead",
    # data / ml
    "data-engineer", "senior-data-engineer", "staff-data-engineer", "data-scientist",
    "senior-data-scientist", "staff-data-scientist", "data-analyst", "senior-data-analyst",
    "analytics-engineer", "machine-learning-engineer", "senior-machine-learning-engineer",
    "ml-engineer", "ai-engineer", "research-scientist", "research-engineer",
    "applied-scientist", "data-architect", "mlops-engineer",
    # product / design
    "product-manager", "senior-product-manager", "principal-product-manager",
    "group-product-manager", "director-of-product", "vp-product", "product-designer",
    "senior-product-designer", "staff-product-designer", "ux-designer",
    "senior-ux-designer", "ux-researcher", "senior-ux-researcher", "ui-designer",
    "design-manager", "head-of-design",
    # management / exec
    "engineering-manager", "senior-engineering-manager", "director-of-engineering",
    "head-of-engineering", "vp-engineering", "technical-program-manager",
    "program-manager", "senior-program-manager", "project-manager", "cto", "ceo",
    "coo", "cfo", "cmo", "cpo", "ciso", "chief-of-staff", "general-manager",
    # go to market
    "account-executive", "senior-account-executive", "enterprise-account-executive",
    "account-manager", "customer-success-manager", "senior-customer-success-manager",
    "sales-manager", "sales-director", "vp-sales", "head-of-sales",
    "business-development-manager", "marketing-manager", "product-marketing-manager",
    "growth-marketing-manager", "head-of-marketing", "vp-marketing",
    # operations / people / finance / legal
    "operations-manager", "business-analyst", "financial-analyst", "controller",
    "accountant", "recruiter", "technical-recruiter", "hr-business-partner",
    "head-of-people", "legal-counsel", "general-counsel", "technical-writer",
})

# seniorities that show up as a slug prefix ("senior-data-engineer");
# the others (manager, director, vp, head, cxo) are already in the title
RANK_SENIORITIES = ("intern", "junior", "senior", "staff", "principal", "lead")

# abbreviation -> expansion, applied to lowercase titles before anything else
_SYNONYMS: Sequence[Tuple[str, str]] = (
    (r"\bsr\b\.?", "senior"),
    (r"\bjr\b\.?", "junior"),
    (r"\bmgr\b\.?", "manager"),
    (r"\beng\b\.?(?!\w)", "engineer"),
    (r"\bdev\b", "developer"),
    (r"\bswe\b", "software engineer"),
    (r"\bml\b", "machine learning"),
    (r"\bsde\b", "software engineer"),
    (r"\bfront[\s-]end\b", "frontend"),
    (r"\bback[\s-]end\b", "backend"),
    (r"\bfull[\s-]?stack\b", "full stack"),
    (r"\bvice president\b", "vp"),
    (r"\bvp\s*(?:of|,|-)\s*", "vp "),
    (r"\bsite reliability engineer(ing)?\b|\bsre\b", "site reliability engineer"),
)

_SENIORITY_RULES: Sequence[Tuple[str, re.Pattern]] = (
    ("intern", re.compile(r"\bintern(ship)?\b")),
    ("principal", re.compile(r"\bprincipal\b")),
    ("staff", re.compile(r"\bstaff\b")),
    ("senior", re.compile(r"\bsenior\b")),
    ("junior", re.compile(r"\bjunior\b")),
    ("vp", re.compile(r"\bvp\b")),
    ("head", re.compile(r"\bhead of\b|\bhead,")),
    ("cxo", re.compile(r"\b(cto|cpo|cmo|cfo|ceo|coo|ciso)\b|\bchief\s")),
    ("manager", re.compile(r"\bmanager\b")),
    ("director", re.compile(r"\bdirector\b")),
    ("lead", re.compile(r"\blead\b")),
)

# first match wins, so "data engineer" is engineering and "data scientist" is data
_DISCIPLINE_RULES: Sequence[Tuple[str, re.Pattern]] = (
    ("engineering", re.compile(
        r"\b(engineer|engineering|developer|devops|site reliability|platform|backend|frontend|"
        r"full stack|architect|cto)\b"
    )),
    ("data", re.compile(
        r"\b(data scientist|data science|machine learning|nlp|computer vision|"
        r"analytics|data analyst|research scientist|applied scientist)\b"
    )),
    ("design", re.compile(r"\b(designer|ux|ui|product design|visual design|brand design)\b")),
    ("product", re.compile(r"\b(product manager|pm|product owner|product lead|cpo|director of product)\b")),
    ("marketing", re.compile(r"\b(marketing|growth|seo|sem|demand gen|content marketer|cmo)\b")),
    ("sales", re.compile(
        r"\b(account executive|ae|sales|business development|bdm|account manager|customer success)\b"
    )),
    ("operations", re.compile(
        r"\b(operations?|ops|program manager|project manager|chief of staff|strategy|coo)\b"
    )),
    ("people", re.compile(r"\b(recruiter|talent|hr|people ops|people operations|people partner|head of people)\b")),
    ("finance", re.compile(r"\b(finance|fp&a|controller|accountant|tax|cfo|financial)\b")),
    ("legal", re.compile(r"\b(legal|counsel|attorney|lawyer|compliance)\b")),
    ("support", re.compile(r"\b(support|customer experience|customer service|help desk)\b")),
    ("generalist", re.compile(r"\b(founder|co-founder|generalist)\b")),
)

_MANAGER_RE = re.compile(
    r"\b(manager|lead|head of|head,|director|vp|cto|cpo|cmo|cfo|ceo|coo|ciso)\b|\bchief\s"
)

_RANK_PREFIX_RE = re.compile(
    r"^(?:(?:senior|staff|principal|lead|junior|intern)\s+)+", re.IGNORECASE
)

_WORK_MODE_SUFFIX_RE = re.compile(
    r"\s*[-–|,]\s*(remote|hybrid|on-?site|us only|usa|anywhere)\b.*$", re.IGNORECASE
)


def clean_title(raw: Optional[str]) -> str:
    """Strip trailing "(Remote)" / "[Contract]" / "- Remote" noise and collapse whitespace."""
    if not raw:
        return ""
    t = raw.strip()
    prev = None
    while prev != t:
        prev = t
        t = re.sub(r"\s*\[[^\]]*\]\s*$", "", t)
        t = re.sub(r"\s*\([^)]*\)\s*$", "", t)
        t = _WORK_MODE_SUFFIX_RE.sub("", t)
    return re.sub(r"\s+", " ", t).strip()


def expand_synonyms(title: str) -> str:
    t = title.lower()
    for pattern, repl in _SYNONYMS:
        t = re.sub(pattern, repl, t)
    return re.sub(r"\s+", " ", t).strip()


def infer_seniority(lower: str) -> Seniority:
    for seniority, pattern in _SENIORITY_RULES:
        if pattern.search(lower):
            return seniority  # type: ignore[return-value]
    if re.search(r"\b(engineer|developer)\b", lower):
        return "mid"
    return "unknown"


def infer_discipline(lower: str) -> Discipline:
    for discipline, pattern in _DISCIPLINE_RULES:
        if pattern.search(lower):
            return discipline  # type: ignore[return-value]
    return "other"


def is_manager_title(lower: str) -> bool:
    return bool(_MANAGER_RE.search(lower))


def base_title(expanded: str) -> str:
    return _RANK_PREFIX_RE.sub("", expanded).strip()


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


_ACRONYMS = {"ai", "ux", "ui", "qa", "hr", "vp", "cto", "ceo", "cfo", "coo", "cmo", "cpo", "ciso", "ios"}


def _capitalize(title: str) -> str:
    words = []
    for w in title.split(" "):
        if w in _ACRONYMS:
            words.append("iOS" if w == "ios" else w.upper())
        elif w in ("of", "and", "the"):
            words.append(w)
        else:
            words.append(w[:1].upper() + w[1:])
    return " ".join(words)


def normalize_role(raw_title: Optional[str]) -> NormalizedRole:
    cleaned = clean_title(raw_title)
    if not cleaned:
        return {
            "normalized_title": "",
            "role_slug": "",
            "base_role_slug": "",
            "seniority": "unknown",
            "discipline": "other",
            "is_manager": False,
        }

    expanded = expand_synonyms(cleaned)
    seniority = infer_seniority(expanded)
    base = base_title(expanded)
    base_slug = slugify(base)

    prefixed = seniority in RANK_SENIORITIES and base != expanded
    role_slug = f"{seniority}-{base_slug}" if prefixed and base_slug else base_slug

    if role_slug not in CANONICAL_ROLE_SLUGS:
        role_slug = ""
        base_slug = ""
    elif base_slug not in CANONICAL_ROLE_SLUGS:
        # "senior-ux-researcher" is listed but the base might not be
        base_slug = role_slug

    return {
        "normalized_title": _capitalize(base),
        "role_slug": role_slug,
        "base_role_slug": base_slug,
        "seniority": seniority,
        "discipline": infer_discipline(expanded),
        "is_manager": is_manager_title(expanded),
    }
