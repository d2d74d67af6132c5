import os

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from blood_requests import storage
from blood_requests.exceptions import CollaboratorFailure, ValidationError
from blood_requests.tasks import delete_donation_proof

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


def png(name='proof.png', content=PNG_BYTES):
    return SimpleUploadedFile(name, content, content_type='image/png')


def test_rejects_non_image_extension():
    with pytest.raises(ValidationError) as exc_info:
        storage.validate_proof_file(SimpleUploadedFile('proof.gif', b'GIF89a', content_type='image/gif'))
    assert 'donation_proof' in exc_info.value.detail


def test_rejects_oversized_file(settings):
    settings.DONATION_PROOF_MAX_BYTES = 10
    with pytest.raises(ValidationError):
        storage.validate_proof_file(png())


def test_extension_check_ignores_case():
    assert storage.validate_proof_file(png('PROOF.JPG')) == '.jpg'


def test_save_and_delete_proof(media_root):
    path = storage.save_proof(png(), user_id=7)

    assert path.startswith('donation-proof/')
    assert path.endswith('-7.png')
    assert os.path.exists(os.path.join(media_root, path))

    assert storage.delete_proof(f'http://testserver/media/{path}') is True
    assert not os.path.exists(os.path.join(media_root, path))


def test_proof_path_from_url():
    assert storage.proof_path_from_url('/media/donation-proof/1-2.png') == 'donation-proof/1-2.png'
    assert storage.proof_path_from_url('https://cdn.example.com/other/1-2.png') is None
    assert storage.proof_path_from_url(None) is None


def test_delete_missing_or_foreign_proof_is_noop():
    assert storage.delete_proof('/media/donation-proof/missing.png') is False
    assert storage.delete_proof('https://cdn.example.com/proof.png') is False


class BrokenStorage:
    def exists(self, path):
        return True

    def delete(self, path):
        raise PermissionError('read-only file system')


def test_storage_errors_become_collaborator_failures(monkeypatch):
    monkeypatch.setattr(storage, 'default_storage', BrokenStorage())
    with pytest.raises(CollaboratorFailure):
        storage.delete_proof('/media/donation-proof/1-2.png')


def test_delete_task_logs_and_swallows_failures(monkeypatch, caplog):
    monkeypatch.setattr(storage, 'default_storage', BrokenStorage())

    assert delete_donation_proof('/media/donation-proof/1-2.png') is False
    assert 'Error deleting donation proof image' in caplog.text
