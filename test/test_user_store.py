"""
Credential vault tests

- bcrypt hashes: salted per call, never the plaintext
- verify succeeds only on the exact password
- Duplicate email -> Conflict, enforced by the store
- Unknown email and wrong password fail identically

Run: python -m pytest test/test_user_store.py -v
"""

import os
import sys
import tempfile
import threading

import bcrypt
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pcshop.core.errors import InvalidInput, Conflict, Unauthorized
from pcshop.core.provisioner import bootstrapStore
from pcshop.core.storage import StorePath
from pcshop.server.userStore import UserStore


@pytest.fixture
def userStore():
    with tempfile.TemporaryDirectory() as tmpdir:
        db, _ = bootstrapStore(StorePath(path=os.path.join(tmpdir, 'pcshop.db')))
        yield UserStore(db)
        db.close()


class TestRegister:

    def test_register_stores_bcrypt_hash(self, userStore):
        userStore.register('u@test.com', 'pass1234')

        storedHash = userStore.getPasswordHash('u@test.com')
        assert storedHash != 'pass1234'
        assert storedHash.startswith('$2')
        assert bcrypt.checkpw(b'pass1234', storedHash.encode('utf-8'))

    def test_same_password_different_hashes(self, userStore):
        userStore.register('a@x.com', 'samesecret')
        userStore.register('b@x.com', 'samesecret')

        assert userStore.getPasswordHash('a@x.com') != userStore.getPasswordHash('b@x.com')

    def test_duplicate_email_conflict(self, userStore):
        userStore.register('a@x.com', 'pass1234')
        with pytest.raises(Conflict):
            userStore.register('a@x.com', 'otherpass')

        assert userStore.count() == 1
        # First registration's password still works
        userStore.verify('a@x.com', 'pass1234')

    def test_concurrent_duplicate_registration_one_winner(self, userStore):
        outcomes = []
        lock = threading.Lock()

        def attempt():
            try:
                userStore.register('race@x.com', 'pass1234')
                result = 'ok'
            except Conflict:
                result = 'conflict'
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ['conflict', 'ok']
        assert userStore.count() == 1

    @pytest.mark.parametrize('email,password', [
        ('', 'pass1234'),
        ('a@x.com', ''),
        ('a@x.com', 'abc'),
        ('a@x.com', 'x' * 73),
        (None, 'pass1234'),
        ('a@x.com', 1234),
    ])
    def test_invalid_input(self, userStore, email, password):
        with pytest.raises(InvalidInput):
            userStore.register(email, password)
        assert userStore.count() == 0

    def test_minimum_length_accepted(self, userStore):
        userStore.register('a@x.com', 'abcd')
        assert userStore.exists('a@x.com')


class TestVerify:

    def test_correct_password(self, userStore):
        userStore.register('real@x.com', 'pass1234')
        userStore.verify('real@x.com', 'pass1234')

    @pytest.mark.parametrize('attempt', ['pass1235', 'pass123', 'pass12345', 'PASS1234', ''])
    def test_wrong_password(self, userStore, attempt):
        userStore.register('real@x.com', 'pass1234')
        with pytest.raises(Unauthorized):
            userStore.verify('real@x.com', attempt)

    def test_unknown_and_wrong_are_indistinguishable(self, userStore):
        userStore.register('real@x.com', 'pass1234')

        with pytest.raises(Unauthorized) as unknown:
            userStore.verify('ghost@x.com', 'anything')
        with pytest.raises(Unauthorized) as wrong:
            userStore.verify('real@x.com', 'wrongpass')

        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.message == wrong.value.message
        assert unknown.value.status == wrong.value.status == 401

    def test_empty_email(self, userStore):
        with pytest.raises(Unauthorized):
            userStore.verify('', 'pass1234')

    def test_overlong_password_rejected_not_crashing(self, userStore):
        userStore.register('real@x.com', 'pass1234')
        with pytest.raises(Unauthorized):
            userStore.verify('real@x.com', 'x' * 100)

    def test_verify_does_not_mutate(self, userStore):
        userStore.register('real@x.com', 'pass1234')
        before = userStore.getPasswordHash('real@x.com')
        userStore.verify('real@x.com', 'pass1234')
        with pytest.raises(Unauthorized):
            userStore.verify('real@x.com', 'nope')
        assert userStore.getPasswordHash('real@x.com') == before
