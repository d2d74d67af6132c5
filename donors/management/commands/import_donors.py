# donors/management/commands/import_donors.py
"""
Django management command to import donor profiles from a CSV or Excel file
Usage: python manage.py import_donors path/to/donors.xlsx
"""
import os

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from algorithms.blood_compatibility import BLOOD_TYPES
from donors.models import DonorProfile

User = get_user_model()

# Alternative spellings found in exported spreadsheets
COLUMN_ALIASES = {
    'full_name': 'name',
    'blood_group': 'blood_type',
    'phone_number': 'phone',
    'address': 'street',
    'zip': 'zip_code',
    'lat': 'latitude',
    'lng': 'longitude',
}

TEXT_FIELDS = ['gender', 'phone', 'street', 'city', 'state', 'zip_code', 'country']


def read_donor_file(path):
    """Load a .csv/.xlsx file into a DataFrame with normalised column names"""
    ext = os.path.splitext(path)[1].lower()
    if ext == '.csv':
        df = pd.read_csv(path, dtype=str)
    elif ext in ('.xlsx', '.xls'):
        df = pd.read_excel(path, dtype=str)
    else:
        raise CommandError(f'Unsupported file type {ext}; use .csv or .xlsx')

    df.columns = df.columns.str.strip().str.lower().str.replace(' ', '_')
    df = df.rename(columns={k: v for k, v in COLUMN_ALIASES.items() if v not in df.columns})
    return df


def _text(row, column):
    value = row.get(column)
    return str(value).strip() if pd.notna(value) else ''


def _number(row, column, cast=float):
    value = row.get(column)
    return cast(float(value)) if pd.notna(value) else None


class Command(BaseCommand):
    help = 'Import donors from a CSV or Excel file'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to the .csv or .xlsx file')

    def handle(self, *args, **options):
        path = options['path']
        if not os.path.exists(path):
            raise CommandError(f'File not found: {path}')

        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))
        df = read_donor_file(path)
        self.stdout.write(f'Found {len(df)} rows')

        missing = {'email', 'blood_type'} - set(df.columns)
        if missing:
            raise CommandError(f'Missing required columns: {", ".join(sorted(missing))}')

        df = df.dropna(subset=['email'])
        df['blood_type'] = df['blood_type'].astype(str).str.strip().str.upper()
        if 'last_donation_date' in df.columns:
            df['last_donation_date'] = pd.to_datetime(df['last_donation_date'], errors='coerce')

        created_count = 0
        updated_count = 0
        skipped_count = 0

        with transaction.atomic():
            for index, row in df.iterrows():
                line = index + 2  # header is line 1

                if row['blood_type'] not in BLOOD_TYPES:
                    self.stdout.write(self.style.WARNING(f'Skipping line {line}: invalid blood type {row["blood_type"]}'))
                    skipped_count += 1
                    continue

                age = _number(row, 'age', int)
                if age is not None and not 18 <= age <= 65:
                    self.stdout.write(self.style.WARNING(f'Skipping line {line}: age {age} out of range (18-65)'))
                    skipped_count += 1
                    continue

                try:
                    # One savepoint per row so a bad row does not abort the import
                    with transaction.atomic():
                        created = self._import_row(row, age)
                except Exception as e:
                    skipped_count += 1
                    self.stdout.write(self.style.ERROR(f'✗ Error at line {line}: {e}'))
                    continue

                if created:
                    created_count += 1
                else:
                    updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✅ Import complete!\n'
                f'Created: {created_count}\n'
                f'Updated: {updated_count}\n'
                f'Skipped: {skipped_count}'
            )
        )

    def _import_row(self, row, age):
        email = _text(row, 'email').lower()
        name = _text(row, 'name')
        first_name, _, last_name = name.partition(' ')

        user, user_created = User.objects.get_or_create(
            email=email,
            defaults={
                'username': email.split('@')[0][:150],
                'first_name': first_name[:150],
                'last_name': last_name[:150],
                'user_type': 'donor',
            }
        )
        if user_created:
            # Imported donors set their password through the reset flow
            user.set_unusable_password()
            user.save(update_fields=['password'])

        last_donation = row.get('last_donation_date')
        defaults = {field: _text(row, field) for field in TEXT_FIELDS}
        defaults.update({
            'blood_type': row['blood_type'],
            'age': age,
            'weight': _number(row, 'weight'),
            'latitude': _number(row, 'latitude'),
            'longitude': _number(row, 'longitude'),
            'donation_count': _number(row, 'donation_count', int) or 0,
            'last_donation_date': last_donation.date() if pd.notna(last_donation) else None,
        })

        donor, created = DonorProfile.objects.update_or_create(user=user, defaults=defaults)
        action = 'Created' if created else 'Updated'
        self.stdout.write(f'✓ {action}: {user.display_name} ({donor.blood_type}) - {email}')
        return created
