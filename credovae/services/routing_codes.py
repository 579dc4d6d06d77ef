"""
Local routing-code reference table, keyed by ISO 3166-1 alpha-2 country code.

Countries absent from the table skip the routing code field entirely.
Countries present with required=False only check the pattern when a code is given.
"""

import re
from collections import namedtuple

from credovae.errors import InvalidRoutingCode
from credovae.services.store import clean_text

RoutingRule = namedtuple('RoutingRule', ['label', 'placeholder', 'required', 'pattern'])

ROUTING_RULES = {
    'US': RoutingRule('ABA Routing Number', '9 digits, e.g. 021000021', True, r'^\d{9}$'),
    'CA': RoutingRule('Transit & Institution Number', '5+3 digits, e.g. 12345-003', True, r'^\d{5}-?\d{3}$'),
    'MX': RoutingRule('CLABE', '18 digits', True, r'^\d{18}$'),
    'BR': RoutingRule('Bank Code (COMPE)', '3 digits, e.g. 001', True, r'^\d{3}$'),
    'AR': RoutingRule('CBU', '22 digits', True, r'^\d{22}$'),
    'CL': RoutingRule('Bank Code', '3 digits', False, r'^\d{3}$'),
    'CO': RoutingRule('Bank Code', '4 digits', False, r'^\d{4}$'),
    'GB': RoutingRule('Sort Code', '6 digits, e.g. 12-34-56', True, r'^\d{2}-?\d{2}-?\d{2}$'),
    'IE': RoutingRule('BIC', '8 or 11 characters', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'DE': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'FR': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'ES': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'IT': RoutingRule('ABI/CAB', '5+5 digits', False, r'^\d{5}-?\d{5}$'),
    'NL': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'BE': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'PT': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'AT': RoutingRule('Bankleitzahl', '5 digits', False, r'^\d{5}$'),
    'CH': RoutingRule('Clearing Number', '3-5 digits', False, r'^\d{3,5}$'),
    'SE': RoutingRule('Clearing Number', '4-5 digits', True, r'^\d{4,5}$'),
    'NO': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'DK': RoutingRule('Registration Number', '4 digits', True, r'^\d{4}$'),
    'FI': RoutingRule('BIC / SWIFT', '8 or 11 characters (optional)', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'PL': RoutingRule('Sort Code', '8 digits', False, r'^\d{8}$'),
    'CZ': RoutingRule('Bank Code', '4 digits', True, r'^\d{4}$'),
    'HU': RoutingRule('Bank Code', '8 digits', False, r'^\d{8}$'),
    'RU': RoutingRule('BIK', '9 digits', True, r'^\d{9}$'),
    'TR': RoutingRule('Branch Code', '5 digits', False, r'^\d{5}$'),
    'IN': RoutingRule('IFSC Code', '11 characters, e.g. SBIN0001234', True, r'^[A-Z]{4}0[A-Z0-9]{6}$'),
    'PK': RoutingRule('Branch Code', '4 digits', False, r'^\d{4}$'),
    'BD': RoutingRule('Routing Number', '9 digits', True, r'^\d{9}$'),
    'CN': RoutingRule('CNAPS Code', '12 digits', True, r'^\d{12}$'),
    'HK': RoutingRule('Bank Code + Branch Code', '3+3 digits', True, r'^\d{3}-?\d{3}$'),
    'JP': RoutingRule('Zengin Code', '4+3 digits', True, r'^\d{4}-?\d{3}$'),
    'KR': RoutingRule('Bank Code', '3 digits', False, r'^\d{3}$'),
    'SG': RoutingRule('Bank Code + Branch Code', '4+3 digits', True, r'^\d{4}-?\d{3}$'),
    'MY': RoutingRule('BIC / SWIFT', '8 or 11 characters', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
    'PH': RoutingRule('BRSTN', '9 digits', False, r'^\d{9}$'),
    'AU': RoutingRule('BSB Number', '6 digits, e.g. 062-000', True, r'^\d{3}-?\d{3}$'),
    'NZ': RoutingRule('Bank + Branch Number', '2+4 digits', True, r'^\d{2}-?\d{4}$'),
    'ZA': RoutingRule('Branch Code', '6 digits', True, r'^\d{6}$'),
    'NG': RoutingRule('Bank Code', '3 digits', True, r'^\d{3}$'),
    'KE': RoutingRule('Bank Code', '2 digits', False, r'^\d{2}$'),
    'AE': RoutingRule('BIC / SWIFT', '8 or 11 characters', False, r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$'),
}


def get_rule(country_code):
    if not country_code:
        return None
    return ROUTING_RULES.get(clean_text(country_code).upper())


def validate_routing_code(country_code, routing_code):
    """
    Check a routing code against the destination country's rule.

    Returns the normalised code (stripped, upper-cased) or None when the field
    does not apply. Raises InvalidRoutingCode on a missing required code or a
    pattern mismatch.
    """
    rule = get_rule(country_code)
    code = clean_text(routing_code).upper()
    if rule is None:
        return None

    if not code:
        if rule.required:
            raise InvalidRoutingCode(f"{rule.label} is required for {country_code.upper()}")
        return None

    if not re.match(rule.pattern, code):
        raise InvalidRoutingCode(f"Invalid {rule.label}: expected {rule.placeholder}")
    return code


def list_rules():
    return [
        {
            'country': country,
            'label': rule.label,
            'placeholder': rule.placeholder,
            'required': rule.required,
        }
        for country, rule in sorted(ROUTING_RULES.items())
    ]
