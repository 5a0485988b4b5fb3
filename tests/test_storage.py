"""
Unit tests for keyring-backed credential storage
"""

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, PasswordDeleteError

from skylark_curl.crypto.storage import (
    STORAGE_SERVICE_NAME,
    CredentialStore,
    StorageMetadata,
    get_default_store,
)
from skylark_curl.exceptions import StorageError


class TestCredentialStoreInit:
    """Test cases for CredentialStore initialization"""

    def test_default_service(self):
        """Test default service name"""
        assert get_default_store().service_name == STORAGE_SERVICE_NAME == 'skylark-curl'

    def test_custom_service(self):
        """Test custom service name"""
        assert CredentialStore('other').service_name == 'other'


class TestStoreSecret:
    """Test cases for storing secrets"""

    def test_store(self):
        """Test storing a secret"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            metadata = CredentialStore().store_secret('asdf', 'sdfg')

        mock_keyring.set_password.assert_called_once_with('skylark-curl', 'asdf', 'sdfg')
        assert isinstance(metadata, StorageMetadata)
        assert metadata.token == 'asdf'
        assert metadata.storage_type == 'keyring'
        assert metadata.stored_at

    @pytest.mark.parametrize('token,secret', [('', 's'), (None, 's'), ('t', ''), ('t', None)])
    def test_invalid_input(self, token, secret):
        """Test that empty tokens and secrets are rejected"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            with pytest.raises(StorageError):
                CredentialStore().store_secret(token, secret)
        mock_keyring.set_password.assert_not_called()

    def test_keyring_failure(self):
        """Test keyring errors surface as StorageError"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.set_password.side_effect = KeyringError('locked')
            with pytest.raises(StorageError) as exc_info:
                CredentialStore().store_secret('asdf', 'sdfg')
        assert exc_info.value.error_code == 'KEYRING_STORAGE_FAILED'


class TestRetrieveSecret:
    """Test cases for retrieving secrets"""

    def test_retrieve(self):
        """Test looking up a stored secret"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.get_password.return_value = 'sdfg'
            assert CredentialStore().retrieve_secret('asdf') == 'sdfg'
        mock_keyring.get_password.assert_called_once_with('skylark-curl', 'asdf')

    def test_retrieve_missing(self):
        """Test unknown tokens"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.get_password.return_value = None
            assert CredentialStore().retrieve_secret('nobody') is None

    def test_retrieve_failure(self):
        """Test keyring errors on lookup"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.get_password.side_effect = KeyringError('no backend')
            with pytest.raises(StorageError):
                CredentialStore().retrieve_secret('asdf')


class TestDeleteSecret:
    """Test cases for deleting secrets"""

    def test_delete(self):
        """Test deleting a stored secret"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            assert CredentialStore().delete_secret('asdf') is True
        mock_keyring.delete_password.assert_called_once_with('skylark-curl', 'asdf')

    def test_delete_missing(self):
        """Test deleting a secret that was never stored"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.delete_password.side_effect = PasswordDeleteError('not found')
            assert CredentialStore().delete_secret('asdf') is False

    def test_delete_failure(self):
        """Test other keyring errors on delete"""
        with patch('skylark_curl.crypto.storage.keyring') as mock_keyring:
            mock_keyring.delete_password.side_effect = KeyringError('locked')
            with pytest.raises(StorageError) as exc_info:
                CredentialStore().delete_secret('asdf')
        assert exc_info.value.error_code == 'KEYRING_DELETE_FAILED'
