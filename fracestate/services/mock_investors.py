# fracestate/services/mock_investors.py
import random

from .. import db
from ..models import MockInvestor

FIRST_NAMES = [
    'Alex', 'Jordan', 'Casey', 'Morgan', 'Taylor', 'Riley', 'Avery', 'Quinn',
    'Blake', 'Cameron', 'Sage', 'Rowan', 'Emery', 'Phoenix', 'River', 'Skyler',
    'Dakota', 'Finley', 'Hayden', 'Kendall', 'Logan', 'Micah', 'Parker', 'Reese',
]
LAST_NAMES = [
    'Smith', 'Johnson', 'Williams', 'Brown', 'Jones', 'Garcia', 'Miller', 'Davis',
    'Rodriguez', 'Martinez', 'Hernandez', 'Lopez', 'Gonzalez', 'Wilson', 'Anderson',
    'Thomas', 'Taylor', 'Moore', 'Jackson', 'Martin', 'Lee', 'Perez', 'Thompson',
]
LOCATIONS = [
    'Austin, TX', 'Seattle, WA', 'Denver, CO', 'Portland, OR', 'Nashville, TN',
    'Atlanta, GA', 'Phoenix, AZ', 'San Diego, CA', 'Tampa, FL', 'Charlotte, NC',
    'Raleigh, NC', 'Minneapolis, MN', 'Kansas City, MO', 'Las Vegas, NV',
    'Sacramento, CA', 'Louisville, KY', 'Milwaukee, WI', 'Albuquerque, NM',
    'Omaha, NE', 'Oakland, CA', 'Miami, FL', 'Tulsa, OK', 'Honolulu, HI',
]

# (conservative, balanced) cumulative thresholds; the rest are aggressive.
# Luxury listings draw conservative money, budget listings aggressive money.
TYPE_THRESHOLDS = {'A': (0.5, 0.8), 'B': (0.3, 0.7), 'C': (0.2, 0.5)}

# Share ranges per investor type
SHARE_RANGES = {'conservative': (1, 5), 'balanced': (3, 17), 'aggressive': (10, 34)}


def username(rng=random):
    first = rng.choice(FIRST_NAMES)
    last = rng.choice(LAST_NAMES)
    n = rng.randint(1, 999)
    patterns = [
        f"{first}{last}{n}",
        f"{first.lower()}_{last.lower()}",
        f"{first}{n}",
        f"{last.lower()}{n}",
        f"{first.lower()}{last.lower()}{n}",
    ]
    return rng.choice(patterns)


def investor_type_for(property_class, rng=random):
    conservative, balanced = TYPE_THRESHOLDS.get(property_class, (0.3, 0.7))
    roll = rng.random()
    if roll < conservative:
        return 'conservative'
    if roll < balanced:
        return 'balanced'
    return 'aggressive'


def generate_mock_investors(prop, shares_to_fill, now, rng=random):
    """
    Creates 3-8 mock investors whose shares add up to exactly
    ``shares_to_fill``. The last investor (or anyone once five or fewer
    shares remain) takes the remainder.
    """
    investors = []
    left = shares_to_fill
    count = rng.randint(3, 8)
    for i in range(count):
        if left <= 0:
            break
        itype = investor_type_for(prop.property_class, rng)
        if i == count - 1 or left <= 5:
            shares = left
        else:
            shares = min(rng.randint(*SHARE_RANGES[itype]), left)
        investor = MockInvestor(
            property_id=prop.id,
            username=username(rng),
            location=rng.choice(LOCATIONS),
            investor_type=itype,
            shares=shares,
            amount_cents=shares * prop.share_price_cents,
            created_at=now
        )
        db.session.add(investor)
        investors.append(investor)
        left -= shares
    return investors


def fill_remaining_shares(prop, now, rng=random):
    """Sells every remaining share of a listing to mock investors."""
    if prop.available_shares <= 0:
        return []
    investors = generate_mock_investors(prop, prop.available_shares, now, rng)
    prop.available_shares = 0
    return investors


def investor_stats(prop):
    investors = prop.mock_investors.all()
    total = sum(i.amount_cents for i in investors)
    types = {'conservative': 0, 'balanced': 0, 'aggressive': 0}
    for inv in investors:
        types[inv.investor_type] += 1
    return {
        'property_id': prop.id,
        'total_investors': len(investors),
        'total_shares': sum(i.shares for i in investors),
        'total_investment_cents': total,
        'average_investment_cents': total // len(investors) if investors else 0,
        'investor_types': types
    }
