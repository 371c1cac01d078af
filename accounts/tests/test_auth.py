from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import TestCase

from accounts.roles import get_role, is_manager_or_admin, ADMIN, MANAGER, USER, MANAGER_GROUP

User = get_user_model()


class RoleTests(TestCase):

    def test_role_resolution(self):
        admin = User.objects.create_user("root", password="x", is_staff=True)
        manager = User.objects.create_user("boss", password="x")
        manager.groups.add(Group.objects.create(name=MANAGER_GROUP))
        clerk = User.objects.create_user("clerk", password="x")

        self.assertEqual(get_role(admin), ADMIN)
        self.assertEqual(get_role(manager), MANAGER)
        self.assertEqual(get_role(clerk), USER)
        self.assertTrue(is_manager_or_admin(manager))
        self.assertFalse(is_manager_or_admin(clerk))
        self.assertIsNone(get_role(None))


class AuthViewTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user("clerk", password="secret-pass")

    def test_login_me_logout(self):
        response = self.client.post("/api/auth/login", {"username": "clerk", "password": "secret-pass"},
                                    content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["role"], "user")
        self.assertIn("session_token", response.cookies)

        response = self.client.get("/api/auth/me")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "clerk")

        self.assertEqual(self.client.post("/api/auth/logout").status_code, 200)
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_bad_credentials(self):
        response = self.client.post("/api/auth/login", {"username": "clerk", "password": "nope"},
                                    content_type="application/json")
        self.assertEqual(response.status_code, 401)

        response = self.client.post("/api/auth/login", {}, content_type="application/json")
        self.assertEqual(response.status_code, 400)
