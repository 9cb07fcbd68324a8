# fracestate/services/generator.py
"""
Random listing generation for a player's property pool.

Every function takes an ``rng`` with the ``random`` module interface so
callers (and tests) can pass a seeded ``random.Random``.
"""
import logging
import random
from datetime import timedelta

from flask import current_app

from .. import db
from ..models import Property
from . import appreciation, clock, mock_investors

logger = logging.getLogger(__name__)

CLASS_WEIGHTS = {'C': 0.4, 'B': 0.4, 'A': 0.2}

PROPERTY_CLASS_CONFIGS = {
    'C': {
        'price': (100_000, 500_000),
        'sqft': (800, 2000),
        'bedrooms': (1, 3),
        'bathrooms': (1, 2),
        'year_built': (1960, 2010),
        'rental_yield': (0.08, 0.15),
        'types': ['Basic residential home', 'Duplex', 'Trailer park', 'Starter home'],
        'target_areas': ['Developing neighborhoods', 'Rural areas', 'Entry-level markets'],
    },
    'B': {
        'price': (500_000, 2_000_000),
        'sqft': (1500, 4000),
        'bedrooms': (2, 5),
        'bathrooms': (2, 4),
        'year_built': (1980, 2020),
        'rental_yield': (0.05, 0.10),
        'types': ['Single-family home', 'Townhouse', 'Luxury condo', 'Small apartment building'],
        'target_areas': ['Established neighborhoods', 'Suburban developments', 'Secondary markets'],
    },
    'A': {
        'price': (2_000_000, 50_000_000),
        'sqft': (5000, 100_000),
        'bedrooms': (10, 200),  # unit count for apartment buildings
        'bathrooms': (10, 200),
        'year_built': (1990, 2024),
        'rental_yield': (0.03, 0.08),
        'types': ['Large apartment building', 'Commercial real estate', 'Luxury high-rise condo',
                  'Mixed-use development'],
        'target_areas': ['Prime urban locations', 'Luxury markets', 'Commercial districts'],
    },
}

STATE_REGIONS = {
    'FL': 'southeast', 'GA': 'southeast', 'SC': 'southeast', 'AL': 'southeast', 'MS': 'southeast',
    'LA': 'southeast',
    'CA': 'southwest', 'AZ': 'southwest', 'NM': 'southwest', 'NV': 'southwest', 'TX': 'southwest',
    'HI': 'southwest',
    'WA': 'northwest', 'OR': 'northwest', 'ID': 'northwest', 'MT': 'northwest', 'TN': 'northwest',
    'CO': 'northwest', 'UT': 'northwest', 'WY': 'northwest', 'AK': 'northwest', 'WV': 'northwest',
    'IL': 'midwest', 'IN': 'midwest', 'IA': 'midwest', 'KS': 'midwest', 'MI': 'midwest',
    'MN': 'midwest', 'MO': 'midwest', 'NE': 'midwest', 'ND': 'midwest', 'OH': 'midwest',
    'SD': 'midwest', 'WI': 'midwest', 'ME': 'midwest', 'NH': 'midwest', 'VT': 'midwest',
    'MA': 'midwest', 'RI': 'midwest', 'CT': 'midwest', 'NY': 'midwest', 'NJ': 'midwest',
    'PA': 'midwest', 'DE': 'midwest', 'MD': 'midwest', 'DC': 'midwest',
    'NC': 'midwest', 'KY': 'midwest', 'VA': 'midwest', 'AR': 'midwest',
}

CITIES_BY_STATE = {
    'CA': ['Los Angeles', 'San Francisco', 'San Diego', 'Sacramento', 'Oakland', 'Fresno'],
    'TX': ['Houston', 'Dallas', 'Austin', 'San Antonio', 'Fort Worth', 'El Paso'],
    'FL': ['Miami', 'Orlando', 'Tampa', 'Jacksonville', 'St. Petersburg', 'Tallahassee'],
    'NY': ['New York City', 'Buffalo', 'Rochester', 'Syracuse', 'Albany', 'Yonkers'],
    'IL': ['Chicago', 'Aurora', 'Rockford', 'Joliet', 'Naperville', 'Peoria'],
    'GA': ['Atlanta', 'Augusta', 'Columbus', 'Savannah', 'Athens', 'Roswell'],
    'NC': ['Charlotte', 'Raleigh', 'Greensboro', 'Durham', 'Winston-Salem', 'Cary'],
    'AZ': ['Phoenix', 'Tucson', 'Mesa', 'Chandler', 'Scottsdale', 'Gilbert'],
    'WA': ['Seattle', 'Spokane', 'Tacoma', 'Vancouver', 'Bellevue', 'Everett'],
    'OR': ['Portland', 'Eugene', 'Salem', 'Gresham', 'Bend', 'Beaverton'],
    'CO': ['Denver', 'Colorado Springs', 'Aurora', 'Fort Collins', 'Lakewood', 'Arvada'],
    'MI': ['Detroit', 'Grand Rapids', 'Warren', 'Lansing', 'Ann Arbor', 'Flint'],
    'OH': ['Columbus', 'Cleveland', 'Cincinnati', 'Toledo', 'Akron', 'Dayton'],
    'PA': ['Philadelphia', 'Pittsburgh', 'Allentown', 'Erie', 'Reading', 'Scranton'],
    'MA': ['Boston', 'Worcester', 'Springfield', 'Lowell', 'Cambridge', 'Brockton'],
    'TN': ['Nashville', 'Memphis', 'Knoxville', 'Chattanooga', 'Clarksville', 'Murfreesboro'],
}

STREET_NAMES = [
    'Main', 'Oak', 'Pine', 'Maple', 'Cedar', 'Elm', 'Washington', 'Park', 'River', 'Hill',
    'Lake', 'Spring', 'Church', 'School', 'Mill', 'Union', 'High', 'Market', 'Water',
    'Liberty', 'Franklin', 'Lincoln', 'Jefferson', 'Madison', 'Jackson', 'Adams', 'Monroe',
]
STREET_TYPES = ['St', 'Ave', 'Dr', 'Ln', 'Rd', 'Blvd', 'Ct', 'Pl', 'Way', 'Pkwy']

BASE_AMENITIES = ['Parking', 'Air Conditioning', 'Heating']
CLASS_AMENITIES = {
    'C': ['Laundry Hookups', 'Outdoor Space', 'Storage'],
    'B': ['In-Unit Laundry', 'Garage', 'Patio/Deck', 'Modern Kitchen', 'Hardwood Floors'],
    'A': ['Concierge', 'Gym', 'Pool', 'Rooftop Deck', 'Security', 'Valet Parking',
          'Business Center', 'Pet Spa'],
}


def weighted_class(rng=random, weights=None):
    weights = weights or CLASS_WEIGHTS
    roll = rng.random()
    total = 0.0
    for cls, weight in weights.items():
        total += weight
        if roll < total:
            return cls
    return 'C'


def region_for(property_class, state):
    region = STATE_REGIONS.get(state, 'midwest')
    # Northwest mountain listings are class A only
    if region == 'northwest' and property_class != 'A':
        return 'midwest'
    return region


def street_address(rng=random):
    return f"{rng.randint(1, 9999)} {rng.choice(STREET_NAMES)} {rng.choice(STREET_TYPES)}"


def city_in(state, rng=random):
    cities = CITIES_BY_STATE.get(state)
    if not cities:
        prefix = rng.choice(['North', 'South', 'East', 'West', 'New', 'Old', 'Mount', 'Lake'])
        suffix = rng.choice(['field', 'ville', 'town', 'burg', 'dale', 'ford', 'port', 'view'])
        return f"{prefix}{suffix}"
    return rng.choice(cities)


def amenities_for(property_class, rng=random):
    pool = BASE_AMENITIES + CLASS_AMENITIES[property_class]
    count = rng.randint(3, min(8, len(pool)))
    return rng.sample(pool, count)


def contract_time_for(property_class, now, rng=random):
    low, high = current_app.config['CONTRACT_HOURS'][property_class]
    return now + timedelta(hours=rng.uniform(low, high))


def generate_property(user, now, rng=random, property_class=None):
    """
    Builds and adds a listed Property for ``user``. ``now`` is real time and
    drives the contract timer; appreciation is anchored at the user's
    current game time.
    """
    cfg = current_app.config
    game_time = clock.game_time_at(clock.get_or_create_clock(user, now), now)
    cls = property_class or weighted_class(rng)
    profile = PROPERTY_CLASS_CONFIGS[cls]
    state = rng.choice(sorted(STATE_REGIONS))
    ptype = rng.choice(profile['types'])
    area = rng.choice(profile['target_areas'])

    price_dollars = rng.randint(*profile['price'])
    price_cents = price_dollars * 100
    rental_yield = round(rng.uniform(*profile['rental_yield']), 4)
    year_built = rng.randint(*profile['year_built'])
    total_shares = cfg['TOTAL_SHARES']

    prop = Property(
        user_id=user.id,
        property_class=cls,
        address=street_address(rng),
        city=city_in(state, rng),
        state=state,
        region=region_for(cls, state),
        property_type=ptype,
        description=(f"{ptype} in {area.lower()}. Built in {year_built}, offering "
                     f"{rental_yield * 100:.1f}% annual rental yield."),
        amenities=amenities_for(cls, rng),
        sqft=rng.randint(*profile['sqft']),
        bedrooms=rng.randint(*profile['bedrooms']),
        bathrooms=rng.randint(*profile['bathrooms']),
        year_built=year_built,
        price_cents=price_cents,
        original_value_cents=price_cents,
        current_value_cents=price_cents,
        rental_yield=rental_yield,
        appreciation_rate=appreciation.appreciation_rate_for(cls, rng),
        last_appreciation_at=game_time,
        total_shares=total_shares,
        available_shares=rng.randint(int(total_shares * 0.7), total_shares),
        share_price_cents=price_cents // total_shares,
        status='available',
        created_at=now,
        contract_time=contract_time_for(cls, now, rng)
    )
    db.session.add(prop)
    db.session.flush()

    taken = total_shares - prop.available_shares
    if taken > 0:
        mock_investors.generate_mock_investors(prop, taken, now, rng)
    return prop


def generate_batch(user, count, now, rng=random, property_class=None):
    props = [generate_property(user, now, rng, property_class) for _ in range(count)]
    if props:
        logger.info("Generated %s properties for user %s", len(props), user.id)
    return props
