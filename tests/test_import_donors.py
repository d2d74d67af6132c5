from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from donors.models import DonorProfile

pytestmark = pytest.mark.django_db

CSV = (
    'Full Name,Email,Blood Group,Age,Phone Number,City,State,Last Donation Date\n'
    'Hari Bahadur,Hari@Example.com,o+,30,9801234567,Kathmandu,Bagmati,2025-01-15\n'
    'Bad Type,bad@example.com,X+,30,,Kathmandu,Bagmati,\n'
    'Too Young,young@example.com,A+,16,,Kathmandu,Bagmati,\n'
)


def run_import(path):
    out = StringIO()
    call_command('import_donors', str(path), stdout=out)
    return out.getvalue()


def test_import_donors_from_csv(tmp_path):
    path = tmp_path / 'donors.csv'
    path.write_text(CSV)

    output = run_import(path)

    donor = DonorProfile.objects.get()
    assert donor.user.email == 'hari@example.com'
    assert donor.user.first_name == 'Hari'
    assert donor.user.user_type == 'donor'
    assert not donor.user.has_usable_password()
    assert donor.blood_type == 'O+'
    assert donor.age == 30
    assert donor.phone == '9801234567'
    assert donor.last_donation_date == date(2025, 1, 15)
    assert 'Created: 1' in output
    assert 'Skipped: 2' in output


def test_reimport_updates_existing_donor(tmp_path):
    path = tmp_path / 'donors.csv'
    path.write_text(CSV)
    run_import(path)

    path.write_text('email,blood_type,city\nhari@example.com,O-,Pokhara\n')
    output = run_import(path)

    donor = DonorProfile.objects.get()
    assert donor.blood_type == 'O-'
    assert donor.city == 'Pokhara'
    assert 'Updated: 1' in output


def test_missing_required_column(tmp_path):
    path = tmp_path / 'donors.csv'
    path.write_text('email,city\nhari@example.com,Pokhara\n')

    with pytest.raises(CommandError, match='blood_type'):
        run_import(path)


def test_unsupported_file_type(tmp_path):
    path = tmp_path / 'donors.json'
    path.write_text('[]')

    with pytest.raises(CommandError, match='Unsupported file type'):
        run_import(path)
