# notifications/message_templates.py
"""
Text for every notification kind. Each entry has the in-app title and
message plus the email subject and body; all are ``str.format`` templates
filled from the notification's stored params.
"""

FOOTER = """
Thank you for using BloodHero!
This is an automated message. Please do not reply to this email.
"""

REQUEST_DETAILS = """
Request Details:
Patient Name: {patient_name}
Blood Type: {blood_type}
Units Needed: {units_needed}
Hospital: {hospital_name}
Location: {location}
Urgency: {urgency}
Required By: {required_by}
"""

TEMPLATES = {
    'request_created': {
        'title': 'Blood Request Created',
        'message': 'Your blood request for {blood_type} has been created.',
        'subject': 'Blood Request Created: {blood_type}',
        'body': (
            "Dear {requester_name},\n\n"
            "Your blood request has been created successfully.\n"
            + REQUEST_DETAILS +
            "\nYou will be notified when donors respond to your request.\n"
            + FOOTER
        ),
    },
    'new_request_nearby': {
        'title': 'New Blood Request in Your Area',
        'message': 'A new request for {blood_type} blood type has been created in your area.',
        'subject': 'Urgent: Blood Request in {hospital_city} Needs Your Help',
        'body': (
            "Dear {recipient_name},\n\n"
            "A new blood request has been created in your area that matches your blood type.\n"
            + REQUEST_DETAILS +
            "\nPlease log in to your BloodHero account to view more details and respond to this request.\n"
            "Thank you for being a blood donor!\n"
            + FOOTER
        ),
    },
    'request_accepted': {
        'title': 'Donor Accepted Your Request',
        'message': '{donor_name} has accepted your blood request for {blood_type}.',
        'subject': 'Donor Accepted Your Blood Request: {blood_type}',
        'body': (
            "Dear {requester_name},\n\n"
            "A donor has accepted your blood request for {blood_type} blood type.\n"
            "Donor: {donor_name}\n"
            + REQUEST_DETAILS + FOOTER
        ),
    },
    'acceptance_confirmed': {
        'title': 'Blood Request Accepted',
        'message': 'You have successfully accepted a blood request for {blood_type} blood type.',
        'subject': 'Blood Donation Request Accepted: {blood_type}',
        'body': (
            "Dear {recipient_name},\n\n"
            "Thank you for accepting the blood request. Your commitment to donate blood can save lives!\n"
            + REQUEST_DETAILS +
            "\nNext Steps:\n"
            "1. Visit the hospital at the specified location.\n"
            "2. Inform the hospital staff that you're there to donate for {patient_name}.\n"
            "3. After donation, upload proof of donation through the BloodHero app.\n"
            + FOOTER
        ),
    },
    'donor_withdrew': {
        'title': 'Donor Withdrew',
        'message': '{donor_name} is no longer able to donate for your {blood_type} request.',
        'subject': 'A Donor Withdrew From Your Blood Request: {blood_type}',
        'body': (
            "Dear {requester_name},\n\n"
            "{donor_name} has withdrawn from your blood request. "
            "Their slot is open to other donors again.\n"
            + REQUEST_DETAILS + FOOTER
        ),
    },
    'donation_submitted': {
        'title': 'Donation Awaiting Your Verification',
        'message': '{donor_name} has submitted proof of donation. Please verify it.',
        'subject': 'Blood Donation Confirmation',
        'body': (
            "Dear {requester_name},\n\n"
            "{donor_name} has reported donating blood for {patient_name} on {donation_date}.\n"
            "Notes: {notes}\n\n"
            "Please verify this donation:\n{verification_link}\n"
            + FOOTER
        ),
    },
    'donation_confirmed': {
        'title': 'Donation Confirmed',
        'message': 'Your donation for the {blood_type} request has been confirmed.',
        'subject': 'Your Blood Donation was Confirmed',
        'body': (
            "Dear {recipient_name},\n\n"
            "The requester has confirmed your donation.\n"
            "Blood Type: {blood_type}\nHospital: {hospital_name}\n"
            "Feedback from Requester: {feedback}\n\n"
            "Thank you for your generosity!\n"
            + FOOTER
        ),
    },
    'donation_rejected': {
        'title': 'Donation Rejected',
        'message': 'Your donation for the {blood_type} request was not accepted.',
        'subject': 'Your Blood Donation was Rejected',
        'body': (
            "Dear {recipient_name},\n\n"
            "The requester could not verify your donation.\n"
            "Blood Type: {blood_type}\nHospital: {hospital_name}\n"
            "Feedback from Requester: {feedback}\n"
            + FOOTER
        ),
    },
    'donation_reupload': {
        'title': 'Donation Proof Needs Reupload',
        'message': 'Please upload a new proof of donation for the {blood_type} request.',
        'subject': 'Your Blood Donation Needs Reupload',
        'body': (
            "Dear {recipient_name},\n\n"
            "The requester asked for a new proof of donation.\n"
            "Blood Type: {blood_type}\nHospital: {hospital_name}\n"
            "Feedback from Requester: {feedback}\n"
            + FOOTER
        ),
    },
    'donation_not_needed': {
        'title': 'Blood Donation No Longer Needed',
        'message': 'Blood for request #{request_id} has already been received from another donor.',
        'subject': 'Blood Donation No Longer Needed',
        'body': (
            "Dear {recipient_name},\n\n"
            "Thank you for your willingness to donate blood for request #{request_id}.\n"
            "We want to inform you that the required blood has already been received from another donor.\n"
            "Your commitment to helping others is greatly appreciated, and we encourage you "
            "to check other blood donation requests that may need your help.\n\n"
            "Best regards,\nThe BloodHero Team\n"
        ),
    },
    'request_cancelled': {
        'title': 'Blood Request Cancelled',
        'message': 'The {blood_type} request for {patient_name} has been cancelled.',
        'subject': 'Blood Request Cancelled: {blood_type}',
        'body': (
            "Dear {recipient_name},\n\n"
            "The blood request you accepted has been cancelled by the requester. "
            "No donation is needed.\n"
            + REQUEST_DETAILS + FOOTER
        ),
    },
}


class _Params(dict):
    """Missing params render as empty text instead of raising KeyError"""

    def __missing__(self, key):
        return ''


def render(kind, part, params):
    return TEMPLATES[kind][part].format_map(_Params(params or {}))
