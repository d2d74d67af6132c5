"""
Blood Type Compatibility Helper
Determines which donor blood types can supply a requested blood type
"""

BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

# Requested blood type -> donor blood types that may supply it
COMPATIBLE_DONORS = {
    'A+': ['A+', 'A-', 'O+', 'O-'],
    'A-': ['A-', 'O-'],
    'B+': ['B+', 'B-', 'O+', 'O-'],
    'B-': ['B-', 'O-'],
    'AB+': ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-'],  # Universal recipient
    'AB-': ['A-', 'B-', 'AB-', 'O-'],
    'O+': ['O+', 'O-'],
    'O-': ['O-'],
}


def get_compatible_donors(recipient_blood_type):
    """
    Get list of blood types that can donate to recipient

    Args:
        recipient_blood_type: Requested blood type

    Returns:
        List of compatible donor blood types (empty for unknown types)
    """
    return list(COMPATIBLE_DONORS.get(recipient_blood_type, []))
