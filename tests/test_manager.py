"""
Unit tests for UserManager and RoleManager
"""
import unittest

from idmanager.config import IdentityOptions, PasswordOptions
from idmanager.hashing import PasswordHasher
from idmanager.manager import IdentityResult, RoleManager, UserManager
from idmanager.migrations import apply_pending_migrations
from idmanager.roles import ADMINISTRATOR, ALL_ROLES, USER
from idmanager.validators import PasswordValidator, UserNameValidator
from tests.helpers import TempDatabaseTestCase

GOOD_PASSWORD = "Abcdefgh1234"


class ManagerTestCase(TempDatabaseTestCase):

    def setUp(self):
        super().setUp()
        apply_pending_migrations(self.engine)
        self.session = self.Session()
        RoleManager(self.session).seed_roles()
        self.manager = UserManager(self.session, hasher=PasswordHasher(iterations=1_000))

    def tearDown(self):
        self.session.close()
        super().tearDown()

    def create(self, email="alice@example.com", password=GOOD_PASSWORD):
        result, user = self.manager.create(email, email, password)
        self.assertTrue(result.succeeded, result.errors)
        return user


class TestRoleManager(ManagerTestCase):

    def test_seeded_once(self):
        roles = RoleManager(self.session)
        self.assertEqual(sorted(r.name for r in roles.list_roles()), sorted(ALL_ROLES))
        self.assertFalse(roles.seed_roles())
        self.assertEqual(len(roles.list_roles()), len(ALL_ROLES))

    def test_normalized_names(self):
        names = {r.normalized_name for r in RoleManager(self.session).list_roles()}
        self.assertEqual(names, {"ADMINISTRATOR", "USER"})


class TestUserManager(ManagerTestCase):

    def test_create_and_find(self):
        user = self.create()
        self.session.commit()

        found = self.manager.find_by_name("ALICE@example.com")
        self.assertEqual(found.id, user.id)
        self.assertEqual(self.manager.find_by_email("alice@EXAMPLE.com").id, user.id)
        self.assertIsNone(self.manager.find_by_name("bob@example.com"))
        self.assertIsNone(self.manager.find_by_name(""))

    def test_ids_and_stamp_from_column_defaults(self):
        user = self.create()
        self.assertEqual(len(user.id), 32)
        self.assertEqual(len(user.security_stamp), 32)
        self.assertNotEqual(user.id, user.security_stamp)

        stamp = user.security_stamp
        token = self.manager.generate_password_reset_token(user)
        self.assertTrue(self.manager.reset_password(user, token, "NewPassword99"))
        self.assertNotEqual(user.security_stamp, stamp)

        role_ids = {r.id for r in RoleManager(self.session).list_roles()}
        self.assertEqual(len(role_ids), len(ALL_ROLES))

    def test_password_is_hashed(self):
        user = self.create()
        self.assertNotIn(GOOD_PASSWORD, user.password_hash)
        self.assertTrue(self.manager.check_password(user, GOOD_PASSWORD))
        self.assertFalse(self.manager.check_password(user, "wrong"))

    def test_duplicate_user(self):
        self.create()
        result, user = self.manager.create("alice@example.com", "alice@example.com", GOOD_PASSWORD)
        self.assertFalse(result)
        self.assertIsNone(user)
        codes = {e.code for e in result.errors}
        self.assertEqual(codes, {"DuplicateUserName", "DuplicateEmail"})

    def test_weak_password(self):
        result, user = self.manager.create("bob@example.com", "bob@example.com", "short")
        self.assertFalse(result)
        codes = {e.code for e in result.errors}
        self.assertIn("PasswordTooShort", codes)
        self.assertIn("PasswordRequiresDigit", codes)
        self.assertIn("PasswordRequiresUpper", codes)

    def test_invalid_user_name_and_email(self):
        result, _ = self.manager.create("bad name", "not-an-email", GOOD_PASSWORD)
        codes = {e.code for e in result.errors}
        self.assertEqual(codes, {"InvalidUserName", "InvalidEmail"})

    def test_find_role(self):
        self.assertEqual(self.manager.find_role("user").name, USER)
        self.assertIsNone(self.manager.find_role("Auditor"))
        self.assertIsNone(self.manager.find_role(""))

    def test_add_to_role(self):
        user = self.create()
        self.assertTrue(self.manager.add_to_role(user, "administrator"))
        self.assertEqual(self.manager.get_roles(user), [ADMINISTRATOR])

        again = self.manager.add_to_role(user, ADMINISTRATOR)
        self.assertEqual([e.code for e in again.errors], ["UserAlreadyInRole"])

        missing = self.manager.add_to_role(user, "Auditor")
        self.assertEqual([e.code for e in missing.errors], ["InvalidRoleName"])

        self.assertTrue(self.manager.add_to_role(user, USER))
        self.assertEqual(self.manager.get_roles(user), [ADMINISTRATOR, USER])

    def test_reset_password(self):
        user = self.create()
        token = self.manager.generate_password_reset_token(user)
        result = self.manager.reset_password(user, token, "NewPassword99")
        self.assertTrue(result.succeeded)
        self.assertTrue(self.manager.check_password(user, "NewPassword99"))
        self.assertFalse(self.manager.check_password(user, GOOD_PASSWORD))

    def test_reset_token_is_single_use(self):
        user = self.create()
        token = self.manager.generate_password_reset_token(user)
        self.assertTrue(self.manager.reset_password(user, token, "NewPassword99"))
        reused = self.manager.reset_password(user, token, "OtherPassword77")
        self.assertEqual([e.code for e in reused.errors], ["InvalidToken"])

    def test_reset_rejects_weak_password_and_keeps_token(self):
        user = self.create()
        token = self.manager.generate_password_reset_token(user)
        weak = self.manager.reset_password(user, token, "weak")
        self.assertFalse(weak)
        self.assertTrue(self.manager.check_password(user, GOOD_PASSWORD))
        self.assertTrue(self.manager.reset_password(user, token, "NewPassword99"))

    def test_reset_with_bad_token(self):
        user = self.create()
        result = self.manager.reset_password(user, "garbage", "NewPassword99")
        self.assertEqual([e.code for e in result.errors], ["InvalidToken"])


class TestValidators(unittest.TestCase):

    def test_password_policy_options(self):
        options = PasswordOptions(
            required_length=4,
            require_digit=False,
            require_uppercase=False,
            require_non_alphanumeric=True,
            required_unique_chars=3,
        )
        validator = PasswordValidator(options)
        self.assertEqual(validator.validate("ab!c"), [])
        codes = {e.code for e in validator.validate("aaaa")}
        self.assertEqual(codes, {"PasswordRequiresNonAlphanumeric", "PasswordRequiresUniqueChars"})

    def test_user_name_characters(self):
        validator = UserNameValidator(IdentityOptions().user)
        self.assertEqual(validator.validate("first.last+tag@example.com", "first.last@example.com"), [])
        self.assertEqual(
            [e.code for e in validator.validate("who?", "who@example.com")],
            ["InvalidUserName"],
        )
        for email in ("", "@example.com", "name@", "a@b@c"):
            self.assertEqual(
                [e.code for e in validator.validate("ok", email)],
                ["InvalidEmail"],
            )

    def test_identity_result(self):
        self.assertTrue(IdentityResult.success())
        failed = IdentityResult.failed()
        self.assertFalse(failed)
        self.assertEqual(failed.errors, [])


if __name__ == "__main__":
    unittest.main()
