# src/sixfig/pipeline/extract.py
"""
Find the compensation statement in a job posting and turn it into a
`SalaryCandidate` (amounts in the posting's own unit, plus currency and
interval).

Pipeline:
1. decode entities (ATS feeds often escape their HTML twice) and strip tags
2. look for a structured pay-range block (Greenhouse) and trust it if present
3. otherwise cut a snippet around compensation labels (or the first 2,500
   characters) and run the matcher strategies over it
4. every match is scored; best score wins, then the biggest annual figure

Ambiguity is never an error: when nothing carries a currency signal the
extractor returns None and the caller leaves salary fields empty.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from sixfig.models import SalaryCandidate
from sixfig.pipeline.salary import INTERVAL_FACTORS, normalize_currency

logger = logging.getLogger(__name__)

SNIPPET_FALLBACK_CHARS = 2500
INTERVAL_WINDOW_CHARS = 30
ANCHOR_WINDOW_CHARS = 60
PAY_RANGE_BLOCK_SCORE = 10

_ISO = r"USD|EUR|GBP|CAD|AUD|NZD|SGD|CHF|SEK|NOK|DKK|INR"
_SYMBOL = r"US\$|CA\$|C\$|AU\$|A\$|NZ\$|SG\$|S\$|\$|€|£|₹"
_NUMBER = r"\d{1,3}(?:[,.]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?"

MONEY_RE = re.compile(
    rf"(?<![A-Za-z0-9])"
    rf"(?:(?P<pre_code>{_ISO})\s?)?"
    rf"(?P<symbol>{_SYMBOL})?\s?"
    rf"(?P<number>{_NUMBER})"
    rf"(?:\s?(?P<suffix>[kKmM])(?![A-Za-z]))?"
    rf"(?:\s?(?P<post_code>{_ISO})\b)?"
)

_RANGE_SEP_RE = re.compile(r"^\s*(?:-|–|—|to|and|through)\s*$", re.IGNORECASE)
_SENTENCE_BREAK_RE = re.compile(r"[.;!?\n](?:\s|$)")

_KEYWORD_RE = re.compile(
    r"\b(base salary|salary range|pay range|compensation range|base pay|"
    r"salary|compensation|pay|wage|rate|ote|earnings)\b",
    re.IGNORECASE,
)
_HIGH_TRUST_RE = re.compile(r"base salary|pay range|salary range", re.IGNORECASE)
_NOT_BASE_RE = re.compile(r"equity|bonus|signing|commission|stock|rsu", re.IGNORECASE)

_INTERVAL_RE = re.compile(
    r"(?P<hour>\bhourly\b|(?:/|\bper\b|\ban\b|\ba\b)\s*(?:hour|hr)s?\b)"
    r"|(?P<day>\bdaily\b|(?:/|\bper\b|\ba\b)\s*day\b)"
    r"|(?P<week>\bweekly\b|(?:/|\bper\b|\ba\b)\s*(?:week|wk)\b)"
    r"|(?P<month>\bmonthly\b|(?:/|\bper\b|\ba\b)\s*(?:month|mo)\b)"
    r"|(?P<year>\b(?:annual|annually|yearly|per\s+annum|pa)\b|\bp\.a\."
    r"|(?:/|\bper\b|\ba\b|\ban\b)\s*(?:year|yr)\b)",
    re.IGNORECASE,
)

_COMPENSATION_LABELS = (
    "salary range",
    "pay range",
    "base salary",
    "compensation",
    "salary",
    "pay",
)

_DOLLAR_BY_COUNTRY = {"CA": "CAD", "AU": "AUD", "NZ": "NZD", "SG": "SGD"}

_COUNTRY_PATTERNS: Sequence[Tuple[str, re.Pattern]] = (
    ("CA", re.compile(r"\bcanada\b|\btoronto\b|\bvancouver\b|\bmontr[eé]al\b|\bottawa\b|\bcalgary\b|\bwaterloo\b", re.I)),
    ("CA", re.compile(r",\s*(?:ON|BC|QC|AB|MB|NS)\b")),
    ("AU", re.compile(r"\baustralia\b|\bsydney\b|\bmelbourne\b|\bbrisbane\b|\bperth\b|\bNSW\b", re.I)),
    ("NZ", re.compile(r"\bnew zealand\b|\bauckland\b|\bwellington\b", re.I)),
    ("SG", re.compile(r"\bsingapore\b", re.I)),
    ("GB", re.compile(r"\bunited kingdom\b|\bUK\b|\blondon\b|\bengland\b|\bscotland\b|\bmanchester\b", re.I)),
    ("IE", re.compile(r"\bireland\b|\bdublin\b", re.I)),
    ("DE", re.compile(r"\bgermany\b|\bberlin\b|\bmunich\b|\bhamburg\b", re.I)),
    ("CH", re.compile(r"\bswitzerland\b|\bz[uü]rich\b|\bgeneva\b", re.I)),
    ("IN", re.compile(r"\bindia\b|\bbangalore\b|\bbengaluru\b|\bhyderabad\b|\bmumbai\b", re.I)),
    ("US", re.compile(r"\bunited states\b|\bUSA\b|\bU\.S\.", re.I)),
    ("US", re.compile(
        r",\s*(?:AL|AK|AZ|AR|CA|CO|CT|DE|DC|FL|GA|HI|ID|IL|IN|IA|KS|KY|LA|ME|MD|MA|MI|MN|MS|MO|"
        r"MT|NE|NV|NH|NJ|NM|NY|NC|ND|OH|OK|OR|PA|RI|SC|SD|TN|TX|UT|VT|VA|WA|WV|WI|WY)\b"
    )),
)


# ---- HTML handling ------------------------------------------------------------

def decode_html(raw: Optional[str]) -> str:
    """Unescape entities until the text stops changing (`&amp;lt;p&amp;gt;` -> `<p>`)."""
    if not raw:
        return ""
    text = raw
    for _ in range(3):
        decoded = html_lib.unescape(text)
        if decoded == text:
            break
        text = decoded
    return text


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace("\xa0", " ")).strip()


def html_to_text(raw: Optional[str]) -> str:
    decoded = decode_html(raw)
    if "<" not in decoded:
        return _collapse(decoded)
    soup = BeautifulSoup(decoded, "html.parser")
    return _collapse(soup.get_text(" "))


# ---- Location -> country ------------------------------------------------------

def infer_country_code(location_text: Optional[str]) -> Optional[str]:
    """Best-effort ISO country code from free-text location; None when unsure."""
    if not location_text:
        return None
    for code, pattern in _COUNTRY_PATTERNS:
        if pattern.search(location_text):
            return code
    return None


# ---- Money tokens -------------------------------------------------------------

@dataclass(frozen=True)
class MoneyToken:
    start: int
    end: int
    value: float
    multiplier: int
    code: Optional[str]
    symbol: Optional[str]

    @property
    def has_currency(self) -> bool:
        return bool(self.code or self.symbol)

    @property
    def amount(self) -> float:
        return self.value * self.multiplier


def parse_amount(number: str, suffix: Optional[str] = None) -> Optional[float]:
    """'150,000' -> 150000, '22.00' -> 22, '1.5' + 'm' -> 1500000, '80.000' -> 80000."""
    s = (number or "").strip()
    if not s:
        return None
    cents = 0.0
    decimals = re.search(r"[.,](\d{1,2})$", s)
    if decimals:
        cents = float("0." + decimals.group(1))
        s = s[: decimals.start()]
    whole = re.sub(r"[,.]", "", s)
    if not whole.isdigit():
        return None
    value = int(whole) + cents
    if suffix:
        value *= 1000 if suffix.lower() == "k" else 1_000_000
    return value


def money_tokens(text: str) -> List[MoneyToken]:
    out: List[MoneyToken] = []
    for m in MONEY_RE.finditer(text):
        value = parse_amount(m.group("number"))
        if value is None:
            continue
        suffix = (m.group("suffix") or "").lower()
        multiplier = {"k": 1000, "m": 1_000_000}.get(suffix, 1)
        out.append(MoneyToken(
            start=m.start(),
            end=m.end(),
            value=value,
            multiplier=multiplier,
            code=m.group("pre_code") or m.group("post_code"),
            symbol=m.group("symbol"),
        ))
    return out


def _pair_ranges(text: str, tokens: List[MoneyToken]) -> Tuple[List[Tuple[MoneyToken, MoneyToken]], set]:
    ranges: List[Tuple[MoneyToken, MoneyToken]] = []
    used: set = set()
    i = 0
    while i < len(tokens) - 1:
        a, b = tokens[i], tokens[i + 1]
        if _RANGE_SEP_RE.match(text[a.end:b.start]):
            ranges.append((a, b))
            used.update((i, i + 1))
            i += 2
        else:
            i += 1
    return ranges, used


# ---- Context helpers ----------------------------------------------------------

@dataclass(frozen=True)
class ExtractContext:
    location_text: Optional[str] = None
    country_code: Optional[str] = None

    def dollar_currency(self) -> str:
        country = (self.country_code or "").upper() or infer_country_code(self.location_text)
        return _DOLLAR_BY_COUNTRY.get(country or "", "USD")


def resolve_currency(tokens: Sequence[MoneyToken], ctx: ExtractContext) -> Tuple[Optional[str], bool]:
    """
    ISO code beats an unambiguous symbol, which beats a bare "$" (resolved
    from location). Returns (currency, explicit).
    """
    for t in tokens:
        if t.code:
            return t.code.upper(), True
    for t in tokens:
        if t.symbol:
            code = normalize_currency(t.symbol)
            if code:
                return code, True
    if any(t.symbol == "$" for t in tokens):
        return ctx.dollar_currency(), False
    return None, False


def _before_window(text: str, start: int, size: int) -> str:
    window = text[max(0, start - size):start]
    breaks = list(_SENTENCE_BREAK_RE.finditer(window))
    if breaks:
        window = window[breaks[-1].end():]
    return window


def _after_window(text: str, end: int, size: int) -> str:
    window = text[end:end + size]
    brk = _SENTENCE_BREAK_RE.search(window)
    return window[:brk.start()] if brk else window


def _interval_in(window: str, *, last: bool = False) -> Optional[str]:
    matches = list(_INTERVAL_RE.finditer(window))
    if not matches:
        return None
    m = matches[-1] if last else matches[0]
    return m.lastgroup


def interval_near(text: str, start: int, end: int) -> Optional[str]:
    """Interval keyword right after the money span, else right before it."""
    found = _interval_in(_after_window(text, end, INTERVAL_WINDOW_CHARS))
    if found:
        return found
    return _interval_in(_before_window(text, start, INTERVAL_WINDOW_CHARS), last=True)


def infer_interval(text: str) -> str:
    """
    Interval implied by `text`, looking only next to money tokens. A word
    like "hourly" on its own ("manages hourly employees") says nothing about
    pay, so without an adjacent amount this falls back to "year".
    """
    for token in money_tokens(text):
        if not token.has_currency:
            continue
        found = interval_near(text, token.start, token.end)
        if found:
            return found
    return "year"


def find_anchor(text: str, start: int) -> Optional[str]:
    """Closest compensation keyword preceding a match in the same sentence."""
    window = _before_window(text, start, ANCHOR_WINDOW_CHARS)
    matches = list(_KEYWORD_RE.finditer(window))
    return matches[-1].group(0) if matches else None


# ---- Scoring ------------------------------------------------------------------

def score_candidate(matcher: str, anchor: Optional[str], context: str) -> int:
    """
    +2 for a keyword anchor, +4 more when that anchor is a high-trust phrase
    ("base salary", "pay range", "salary range"), -4 when the surrounding text
    talks about equity/bonus/signing money, which is not base pay.
    """
    if matcher == "pay_range_block":
        return PAY_RANGE_BLOCK_SCORE
    score = 0
    if anchor:
        score += 2
        if _HIGH_TRUST_RE.search(anchor):
            score += 4
    if _NOT_BASE_RE.search(context or ""):
        score -= 4
    return score


def annual_magnitude(candidate: SalaryCandidate) -> float:
    return candidate["max"] * INTERVAL_FACTORS.get(candidate["interval"], 1)


# ---- Matcher strategies -------------------------------------------------------

def _build(
    text: str,
    matcher: str,
    tokens: Sequence[MoneyToken],
    low: float,
    high: float,
    ctx: ExtractContext,
    anchor: Optional[str],
) -> Optional[SalaryCandidate]:
    if not any(t.has_currency for t in tokens):
        return None
    currency, explicit = resolve_currency(tokens, ctx)
    if currency is None:
        return None

    start, end = tokens[0].start, tokens[-1].end
    interval = interval_near(text, start, end)
    if interval is None:
        # without a stated interval only annual-looking figures are trusted
        if max(low, high) < 1000:
            return None
        interval = "year"

    if low <= 0 or high <= 0:
        return None
    if low > high:
        low, high = high, low

    context = text[max(0, start - 40):end + 40]
    return {
        "min": low,
        "max": high,
        "currency": currency,
        "currency_explicit": explicit,
        "interval": interval,  # type: ignore[typeddict-item]
        "matcher": matcher,
        "score": score_candidate(matcher, anchor, context),
        "raw": text[start:end].strip(),
    }


def _range_amounts(a: MoneyToken, b: MoneyToken) -> Tuple[float, float]:
    low = a.amount
    # "120-150k": the suffix on the upper bound applies to both
    if a.multiplier == 1 and b.multiplier > 1 and a.value < 1000:
        low = a.value * b.multiplier
    return low, b.amount


def _ranges(text: str, ctx: ExtractContext, *, keyword: bool) -> List[SalaryCandidate]:
    tokens = money_tokens(text)
    pairs, _ = _pair_ranges(text, tokens)
    out: List[SalaryCandidate] = []
    for a, b in pairs:
        anchor = find_anchor(text, a.start)
        if keyword and not anchor:
            continue
        low, high = _range_amounts(a, b)
        name = "range_keyword" if keyword else "range_symbol"
        cand = _build(text, name, (a, b), low, high, ctx, anchor if keyword else None)
        if cand:
            out.append(cand)
    return out


def _singles(text: str, ctx: ExtractContext, *, keyword: bool) -> List[SalaryCandidate]:
    tokens = money_tokens(text)
    _, used = _pair_ranges(text, tokens)
    out: List[SalaryCandidate] = []
    for i, t in enumerate(tokens):
        if i in used or not t.has_currency:
            continue
        anchor = find_anchor(text, t.start)
        if keyword and not anchor:
            continue
        name = "single_keyword" if keyword else "single_symbol"
        cand = _build(text, name, (t,), t.amount, t.amount, ctx, anchor if keyword else None)
        if cand:
            out.append(cand)
    return out


def range_keyword(text: str, ctx: ExtractContext) -> List[SalaryCandidate]:
    return _ranges(text, ctx, keyword=True)


def range_symbol(text: str, ctx: ExtractContext) -> List[SalaryCandidate]:
    return _ranges(text, ctx, keyword=False)


def single_keyword(text: str, ctx: ExtractContext) -> List[SalaryCandidate]:
    return _singles(text, ctx, keyword=True)


def single_symbol(text: str, ctx: ExtractContext) -> List[SalaryCandidate]:
    return _singles(text, ctx, keyword=False)


Matcher = Callable[[str, ExtractContext], List[SalaryCandidate]]

# preference order; also the final tie-breaker
MATCHERS: Tuple[Tuple[str, Matcher], ...] = (
    ("range_keyword", range_keyword),
    ("range_symbol", range_symbol),
    ("single_keyword", single_keyword),
    ("single_symbol", single_symbol),
)
_MATCHER_RANK: Dict[str, int] = {name: i for i, (name, _) in enumerate(MATCHERS)}


def pick_best(candidates: Sequence[SalaryCandidate]) -> Optional[SalaryCandidate]:
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda c: (c["score"], annual_magnitude(c), -_MATCHER_RANK.get(c["matcher"], -1)),
    )


def run_matchers(text: str, ctx: ExtractContext) -> Optional[SalaryCandidate]:
    candidates: List[SalaryCandidate] = []
    for _name, matcher in MATCHERS:
        candidates.extend(matcher(text, ctx))
    return pick_best(candidates)


# ---- Snippets and structured fragments ----------------------------------------

def find_compensation_snippet(text: str) -> str:
    """
    Window around the first compensation label found (labels checked most
    specific first), else the head of the posting.
    """
    lowered = text.lower()
    for label in _COMPENSATION_LABELS:
        m = re.search(rf"\b{re.escape(label)}\b", lowered)
        if m:
            return text[max(0, m.start() - 100):m.start() + 600]
    return text[:SNIPPET_FALLBACK_CHARS]


def find_pay_range_fragment(
    raw_html: Optional[str],
    ctx: Optional[ExtractContext] = None,
) -> Optional[SalaryCandidate]:
    """Greenhouse's `<div class="pay-range"><span>$X</span><span>$Y</span></div>` block."""
    decoded = decode_html(raw_html)
    if "pay-range" not in decoded:
        return None
    ctx = ctx or ExtractContext()
    soup = BeautifulSoup(decoded, "html.parser")
    for block in soup.select('[class*="pay-range"]'):
        text = _collapse(block.get_text(" "))
        tokens = [t for t in money_tokens(text) if t.amount > 0]
        if len(tokens) < 2:
            continue
        low, high = _range_amounts(tokens[0], tokens[1])
        cand = _build(text, "pay_range_block", tokens[:2], low, high, ctx, None)
        if cand:
            return cand
    return None


# ---- Entry points -------------------------------------------------------------

def parse_salary_text(
    text: Optional[str],
    *,
    location_text: Optional[str] = None,
    country_code: Optional[str] = None,
) -> Optional[SalaryCandidate]:
    """Parse a dedicated salary field or any short compensation string."""
    if not text:
        return None
    ctx = ExtractContext(location_text=location_text, country_code=country_code)
    return run_matchers(html_to_text(text), ctx)


def extract_salary(
    raw: Optional[str],
    *,
    location_text: Optional[str] = None,
    country_code: Optional[str] = None,
) -> Optional[SalaryCandidate]:
    """Generic extractor for HTML or plain-text descriptions."""
    text = html_to_text(raw)
    if not text:
        return None
    ctx = ExtractContext(location_text=location_text, country_code=country_code)

    snippet = find_compensation_snippet(text)
    found = run_matchers(snippet, ctx)
    if found is None and snippet != text[:SNIPPET_FALLBACK_CHARS]:
        logger.debug("no salary near compensation label, scanning posting head")
        found = run_matchers(text[:SNIPPET_FALLBACK_CHARS], ctx)
    return found


def extract_greenhouse_salary(
    raw: Optional[str],
    *,
    location_text: Optional[str] = None,
    country_code: Optional[str] = None,
) -> Optional[SalaryCandidate]:
    ctx = ExtractContext(location_text=location_text, country_code=country_code)
    block = find_pay_range_fragment(raw, ctx)
    if block:
        return block
    return extract_salary(raw, location_text=location_text, country_code=country_code)


_LEVER_SECTION_RE = re.compile(r"compensation|salary|pay|wage", re.IGNORECASE)


def extract_lever_salary(
    raw: Optional[str],
    *,
    location_text: Optional[str] = None,
    country_code: Optional[str] = None,
) -> Optional[SalaryCandidate]:
    """
    Lever postings carry compensation in titled list sections
    (`<h3>Compensation</h3><ul>...</ul>`); read those first.
    """
    decoded = decode_html(raw)
    ctx = ExtractContext(location_text=location_text, country_code=country_code)
    if "<" in decoded:
        soup = BeautifulSoup(decoded, "html.parser")
        for heading in soup.find_all(["h2", "h3", "h4", "b", "strong"]):
            title = heading.get_text(" ", strip=True)
            if not _LEVER_SECTION_RE.search(title):
                continue
            parts = [title]
            for sib in heading.find_next_siblings(limit=2):
                parts.append(sib.get_text(" "))
            found = run_matchers(_collapse(" ".join(parts)), ctx)
            if found:
                return found
    return extract_salary(decoded, location_text=location_text, country_code=country_code)


Extractor = Callable[..., Optional[SalaryCandidate]]

_EXTRACTORS: Dict[str, Extractor] = {
    "ats:greenhouse": extract_greenhouse_salary,
    "ats:lever": extract_lever_salary,
}


def extractor_for_source(source: str) -> Extractor:
    return _EXTRACTORS.get((source or "").lower(), extract_salary)
