"""State income tax estimators keyed by metro area (MSA) string."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

NATIONAL_AVERAGE_RATE = 0.05


@dataclass(frozen=True)
class StateTaxResult:
    """Result from a state tax estimate."""
    tax: float
    rate: float
    state: Optional[str] = None
    state_name: Optional[str] = None
    tax_type: Optional[str] = None  # 'none', 'flat', 'progressive', 'limited'
    note: str = ""
    brackets: Optional[str] = None
    is_estimate: bool = True


class StateTaxEstimator(ABC):
    """Abstract base class for state tax estimators."""

    @abstractmethod
    def estimate(self, taxable_income: float, msa: str) -> StateTaxResult:
        """Estimate state income tax for a location."""
        pass


class NationalAverageEstimator(StateTaxEstimator):
    """Flat national-average rate, used when no location data is available."""

    def __init__(self, rate: float = NATIONAL_AVERAGE_RATE,
                 note: str = 'Using 5% national average estimate.'):
        self.rate = rate
        self.note = note

    def estimate(self, taxable_income: float, msa: str = '') -> StateTaxResult:
        tax = round(taxable_income * self.rate, 2) if taxable_income > 0 else 0.0
        return StateTaxResult(tax=tax, rate=self.rate, note=self.note, is_estimate=True)


@dataclass(frozen=True)
class StateTaxInfo:
    """2025 rate data for one state."""
    rate: float  # Percent; top marginal for progressive states
    name: str
    tax_type: str
    note: str
    brackets: Optional[str] = None


def _info(rate, name, tax_type, note, brackets=None) -> StateTaxInfo:
    return StateTaxInfo(rate, name, tax_type, note, brackets)


# Simplified 2025 rates; progressive states use the rate typical for $50k-$500k earners
STATE_TAX_DATA: Dict[str, StateTaxInfo] = {
    # No income tax
    'AK': _info(0, 'Alaska', 'none', 'No state income tax'),
    'FL': _info(0, 'Florida', 'none', 'No state income tax'),
    'NV': _info(0, 'Nevada', 'none', 'No state income tax'),
    'SD': _info(0, 'South Dakota', 'none', 'No state income tax'),
    'TX': _info(0, 'Texas', 'none', 'No state income tax'),
    'WA': _info(0, 'Washington', 'none', 'No state income tax (has capital gains tax on high earners)'),
    'WY': _info(0, 'Wyoming', 'none', 'No state income tax'),
    'TN': _info(0, 'Tennessee', 'none', 'No state income tax (Hall Tax fully repealed 2021)'),
    'NH': _info(0, 'New Hampshire', 'limited', 'No tax on wages (interest/dividends tax repealed 2025)'),

    # Flat
    'CO': _info(4.4, 'Colorado', 'flat', 'Flat rate on federal taxable income'),
    'IL': _info(4.95, 'Illinois', 'flat', 'Flat rate'),
    'IN': _info(3.05, 'Indiana', 'flat', 'Flat rate (plus local income taxes in many areas)'),
    'KY': _info(4.0, 'Kentucky', 'flat', 'Flat rate'),
    'MA': _info(5.0, 'Massachusetts', 'flat', 'Flat rate (4% surtax on income over $1M)'),
    'MI': _info(4.25, 'Michigan', 'flat', 'Flat rate (some cities have additional tax)'),
    'NC': _info(4.5, 'North Carolina', 'flat', 'Flat rate (reduced from 4.75% in 2025)'),
    'PA': _info(3.07, 'Pennsylvania', 'flat', 'Flat rate (plus local income taxes)'),
    'UT': _info(4.65, 'Utah', 'flat', 'Flat rate'),
    'AZ': _info(2.5, 'Arizona', 'flat', 'Flat rate (reduced in 2023)'),
    'ID': _info(5.695, 'Idaho', 'flat', 'Flat rate (converted from progressive in 2023)'),

    # Progressive
    'AL': _info(5.0, 'Alabama', 'progressive', 'Top rate applies above $3,000', '2-5%'),
    'AR': _info(3.9, 'Arkansas', 'progressive', 'Top rate applies above $87,000', '0-3.9%'),
    'CA': _info(9.3, 'California', 'progressive', 'Rate for $68k-$349k (top rate 13.3%)', '1-13.3%'),
    'CT': _info(6.99, 'Connecticut', 'progressive', 'Top rate applies above $500k', '2-6.99%'),
    'DE': _info(6.6, 'Delaware', 'progressive', 'Top rate applies above $60k', '0-6.6%'),
    'GA': _info(5.39, 'Georgia', 'progressive', 'Top rate applies above $10k', '1-5.39%'),
    'HI': _info(9.0, 'Hawaii', 'progressive', 'Rate for $48k-$150k (top rate 11%)', '1.4-11%'),
    'IA': _info(5.7, 'Iowa', 'progressive', 'Top rate (being phased to 3.9% by 2026)', '4.4-5.7%'),
    'KS': _info(5.7, 'Kansas', 'progressive', 'Top rate applies above $30k', '3.1-5.7%'),
    'LA': _info(4.25, 'Louisiana', 'progressive', 'Top rate applies above $50k', '1.85-4.25%'),
    'ME': _info(7.15, 'Maine', 'progressive', 'Top rate applies above $58k', '5.8-7.15%'),
    'MD': _info(5.75, 'Maryland', 'progressive', 'Top rate (plus local tax 2.25-3.2%)', '2-5.75%'),
    'MN': _info(7.85, 'Minnesota', 'progressive', 'Rate for $98k-$183k (top rate 9.85%)', '5.35-9.85%'),
    'MS': _info(4.7, 'Mississippi', 'progressive', 'Top rate (being phased to 4% by 2026)', '0-4.7%'),
    'MO': _info(4.8, 'Missouri', 'progressive', 'Top rate applies above $9k', '0-4.8%'),
    'MT': _info(5.9, 'Montana', 'progressive', 'Top rate applies above $20k', '1-5.9%'),
    'NE': _info(5.84, 'Nebraska', 'progressive', 'Top rate (being reduced annually)', '2.46-5.84%'),
    'NJ': _info(6.37, 'New Jersey', 'progressive', 'Rate for $75k-$500k (top rate 10.75%)', '1.4-10.75%'),
    'NM': _info(5.9, 'New Mexico', 'progressive', 'Top rate applies above $210k', '1.7-5.9%'),
    'NY': _info(6.85, 'New York', 'progressive', 'Rate for $80k-$215k (top rate 10.9%, plus NYC tax)', '4-10.9%'),
    'ND': _info(1.95, 'North Dakota', 'progressive', 'Top rate (one of lowest in nation)', '0-1.95%'),
    'OH': _info(3.5, 'Ohio', 'progressive', 'Top rate applies above $115k', '0-3.5%'),
    'OK': _info(4.75, 'Oklahoma', 'progressive', 'Top rate applies above $15k', '0.25-4.75%'),
    'OR': _info(9.0, 'Oregon', 'progressive', 'Rate for $10k-$125k (top rate 9.9%)', '4.75-9.9%'),
    'RI': _info(5.99, 'Rhode Island', 'progressive', 'Top rate applies above $166k', '3.75-5.99%'),
    'SC': _info(6.2, 'South Carolina', 'progressive', 'Top rate (being phased to 6% by 2027)', '0-6.2%'),
    'VT': _info(7.6, 'Vermont', 'progressive', 'Rate for $106k-$229k (top rate 8.75%)', '3.35-8.75%'),
    'VA': _info(5.75, 'Virginia', 'progressive', 'Top rate applies above $17k', '2-5.75%'),
    'WV': _info(5.12, 'West Virginia', 'progressive', 'Top rate (being reduced annually)', '2.36-5.12%'),
    'WI': _info(6.27, 'Wisconsin', 'progressive', 'Rate for $37k-$405k (top rate 7.65%)', '3.5-7.65%'),
    'DC': _info(8.5, 'District of Columbia', 'progressive', 'Rate for $60k-$250k (top rate 10.75%)', '4-10.75%'),
}

STATE_NAMES: Dict[str, str] = {
    'alabama': 'AL', 'alaska': 'AK', 'arizona': 'AZ', 'arkansas': 'AR',
    'california': 'CA', 'colorado': 'CO', 'connecticut': 'CT', 'delaware': 'DE',
    'florida': 'FL', 'georgia': 'GA', 'hawaii': 'HI', 'idaho': 'ID',
    'illinois': 'IL', 'indiana': 'IN', 'iowa': 'IA', 'kansas': 'KS',
    'kentucky': 'KY', 'louisiana': 'LA', 'maine': 'ME', 'maryland': 'MD',
    'massachusetts': 'MA', 'michigan': 'MI', 'minnesota': 'MN', 'mississippi': 'MS',
    'missouri': 'MO', 'montana': 'MT', 'nebraska': 'NE', 'nevada': 'NV',
    'new hampshire': 'NH', 'new jersey': 'NJ', 'new mexico': 'NM', 'new york': 'NY',
    'north carolina': 'NC', 'north dakota': 'ND', 'ohio': 'OH', 'oklahoma': 'OK',
    'oregon': 'OR', 'pennsylvania': 'PA', 'rhode island': 'RI', 'south carolina': 'SC',
    'south dakota': 'SD', 'tennessee': 'TN', 'texas': 'TX', 'utah': 'UT',
    'vermont': 'VT', 'virginia': 'VA', 'washington': 'WA', 'west virginia': 'WV',
    'wisconsin': 'WI', 'wyoming': 'WY', 'district of columbia': 'DC', 'washington dc': 'DC',
}

# Major metros that are often entered without a state
CITY_STATE_MAP: Dict[str, str] = {
    'new york': 'NY', 'nyc': 'NY', 'los angeles': 'CA', 'la': 'CA', 'chicago': 'IL',
    'houston': 'TX', 'phoenix': 'AZ', 'philadelphia': 'PA', 'philly': 'PA',
    'san antonio': 'TX', 'san diego': 'CA', 'dallas': 'TX', 'san jose': 'CA',
    'austin': 'TX', 'jacksonville': 'FL', 'fort worth': 'TX', 'columbus': 'OH',
    'charlotte': 'NC', 'san francisco': 'CA', 'sf': 'CA', 'indianapolis': 'IN',
    'seattle': 'WA', 'denver': 'CO', 'washington': 'DC', 'dc': 'DC', 'boston': 'MA',
    'el paso': 'TX', 'detroit': 'MI', 'nashville': 'TN', 'portland': 'OR',
    'memphis': 'TN', 'oklahoma city': 'OK', 'las vegas': 'NV', 'louisville': 'KY',
    'baltimore': 'MD', 'milwaukee': 'WI', 'albuquerque': 'NM', 'tucson': 'AZ',
    'fresno': 'CA', 'mesa': 'AZ', 'sacramento': 'CA', 'atlanta': 'GA',
    'kansas city': 'MO', 'colorado springs': 'CO', 'miami': 'FL', 'raleigh': 'NC',
    'omaha': 'NE', 'long beach': 'CA', 'virginia beach': 'VA', 'oakland': 'CA',
    'minneapolis': 'MN', 'tulsa': 'OK', 'tampa': 'FL', 'arlington': 'TX',
    'new orleans': 'LA', 'wichita': 'KS', 'cleveland': 'OH', 'bakersfield': 'CA',
    'aurora': 'CO', 'anaheim': 'CA', 'honolulu': 'HI', 'santa ana': 'CA',
    'riverside': 'CA', 'corpus christi': 'TX', 'lexington': 'KY', 'st louis': 'MO',
    'saint louis': 'MO', 'stockton': 'CA', 'pittsburgh': 'PA', 'anchorage': 'AK',
    'cincinnati': 'OH', 'st paul': 'MN', 'saint paul': 'MN', 'orlando': 'FL',
    'newark': 'NJ', 'boise': 'ID', 'salt lake city': 'UT', 'birmingham': 'AL',
    'rochester': 'NY', 'buffalo': 'NY', 'providence': 'RI', 'richmond': 'VA',
    'hartford': 'CT', 'des moines': 'IA', 'little rock': 'AR', 'jackson': 'MS',
    'charleston': 'SC', 'columbia': 'SC', 'sioux falls': 'SD', 'fargo': 'ND',
    'billings': 'MT', 'cheyenne': 'WY', 'burlington': 'VT', 'wilmington': 'DE',
    'manchester': 'NH', 'bangor': 'ME',
}

_ABBREVIATION_PATTERN = re.compile(r'(?:,\s*|\s+)([A-Za-z]{2})\s*$')


def extract_state_from_msa(msa: Optional[str]) -> Optional[str]:
    """Find the two-letter state for "City, ST", "City ST", "City, State" or "City"."""
    if not msa or not isinstance(msa, str):
        return None
    cleaned = msa.strip()
    if not cleaned:
        return None

    match = _ABBREVIATION_PATTERN.search(cleaned)
    if match:
        abbr = match.group(1).upper()
        if abbr in STATE_TAX_DATA:
            return abbr

    lowered = cleaned.lower()
    # Longest names first so "west virginia" wins over "virginia"
    for name in sorted(STATE_NAMES, key=len, reverse=True):
        if lowered == name or lowered.endswith(' ' + name) or lowered.endswith(',' + name):
            return STATE_NAMES[name]

    city = lowered.split(',')[0].strip()
    return CITY_STATE_MAP.get(city)


def get_state_tax_info(state_abbr: Optional[str]) -> Optional[StateTaxInfo]:
    """State tax data by abbreviation."""
    if not state_abbr or not isinstance(state_abbr, str):
        return None
    return STATE_TAX_DATA.get(state_abbr.upper())


class MsaStateTaxEstimator(StateTaxEstimator):
    """Applies the resolved state's rate; unknown locations fall back to the national average."""

    def __init__(self, fallback_rate: float = NATIONAL_AVERAGE_RATE):
        self.fallback_rate = fallback_rate

    def estimate(self, taxable_income: float, msa: str) -> StateTaxResult:
        state = extract_state_from_msa(msa)
        info = get_state_tax_info(state)

        if info is None:
            if msa:
                logger.debug("Could not resolve a state from MSA %r", msa)
            fallback = NationalAverageEstimator(
                self.fallback_rate,
                'State could not be determined from MSA. Using 5% national average estimate.'
            )
            return fallback.estimate(taxable_income)

        rate = info.rate / 100
        tax = round(taxable_income * rate, 2) if taxable_income > 0 else 0.0
        return StateTaxResult(
            tax=tax,
            rate=rate,
            state=state,
            state_name=info.name,
            tax_type=info.tax_type,
            note=info.note,
            brackets=info.brackets,
            is_estimate=info.tax_type == 'progressive',
        )
