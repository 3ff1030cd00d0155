import json

from django.test import TestCase, Client
from django.contrib.auth.models import User
from django.urls import reverse

from accounts.backends import UsernameOrEmailBackend


class AccountsTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.test_user = User.objects.create_user(username='testuser', password='password',
                                                 email='testuser@gmail.com')
        cls.inactive_user = User.objects.create_user(username='inactivetestuser', password='password2',
                                                     email="inactive_user@gmail.com")
        cls.inactive_user.is_active = False
        cls.inactive_user.save()

        cls.random_user = User.objects.create_user(username='randomuser', password='random',
                                                   email='random@gmail.com')

    def setUp(self):
        # Every test needs a client.
        self.authenticated_client = Client()
        self.authenticated_client.login(username='testuser', password='password')
        self.unauthenticated_client = Client()

    def post_json(self, client, url, data):
        return client.post(url, data=json.dumps(data), content_type='application/json')

    # Sign up

    def test_sign_up_success(self):
        response = self.post_json(self.unauthenticated_client, reverse('signup'), {
            "username": "newuser",
            "email": "newuser@gmail.com",
            "password": "a-Long-enough-passw0rd",
        })
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data['username'], 'newuser')
        self.assertEqual(data['email'], 'newuser@gmail.com')
        self.assertFalse(data['isAdmin'])
        self.assertNotIn('password', data)

        user = User.objects.get(username='newuser')
        self.assertTrue(user.check_password('a-Long-enough-passw0rd'))

    def test_sign_up_duplicate_email(self):
        response = self.post_json(self.unauthenticated_client, reverse('signup'), {
            "username": "anotheruser",
            "email": "TestUser@gmail.com",
            "password": "a-Long-enough-passw0rd",
        })
        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['error'], 'Validation error')
        self.assertEqual(data['form_errors']['email'], ['A user with that email already exists.'])
        self.assertFalse(User.objects.filter(username='anotheruser').exists())

    def test_sign_up_duplicate_username(self):
        response = self.post_json(self.unauthenticated_client, reverse('signup'), {
            "username": "testuser",
            "email": "someone@gmail.com",
            "password": "a-Long-enough-passw0rd",
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('username', response.json()['form_errors'])

    def test_sign_up_weak_password(self):
        response = self.post_json(self.unauthenticated_client, reverse('signup'), {
            "username": "weakuser",
            "email": "weak@gmail.com",
            "password": "123",
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.json()['form_errors'])
        self.assertFalse(User.objects.filter(username='weakuser').exists())

    def test_sign_up_invalid_json(self):
        response = self.unauthenticated_client.post(reverse('signup'), data='{"username": ',
                                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid JSON')

    def test_sign_up_get_request_not_allowed(self):
        response = self.unauthenticated_client.get(reverse('signup'))
        self.assertEqual(response.status_code, 405)

    # Login / logout

    def test_login_username_password(self):
        response = self.post_json(self.unauthenticated_client, reverse('login'), {
            "username": "testuser",
            "password": "password"
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['id'], AccountsTestCase.test_user.pk)
        # verify that user is authenticated
        self.assertTrue("_auth_user_id" in self.unauthenticated_client.session)

    def test_login_email_password(self):
        response = self.post_json(self.unauthenticated_client, reverse('login'), {
            "username": "testuser@gmail.com",
            "password": "password"
        })
        self.assertEqual(response.status_code, 200)
        self.assertTrue("_auth_user_id" in self.unauthenticated_client.session)

    def test_login_wrong_password(self):
        response = self.post_json(self.unauthenticated_client, reverse('login'), {
            "username": "testuser",
            "password": "wrongpassword"
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Validation error')
        self.assertFalse("_auth_user_id" in self.unauthenticated_client.session)

    def test_login_wrong_username(self):
        response = self.post_json(self.unauthenticated_client, reverse('login'), {
            "username": "testusera",
            "password": "password"
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse("_auth_user_id" in self.unauthenticated_client.session)

    def test_login_inactive_user(self):
        response = self.post_json(self.unauthenticated_client, reverse('login'), {
            "username": "inactivetestuser",
            "password": "password2"
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("Your account is inactive. Please contact support.",
                      response.json()['form_errors']['__all__'])
        self.assertFalse("_auth_user_id" in self.unauthenticated_client.session)

    def test_logout(self):
        response = self.authenticated_client.post(reverse('logout'))
        self.assertEqual(response.status_code, 200)
        self.assertFalse("_auth_user_id" in self.authenticated_client.session)

        response = self.authenticated_client.get(reverse('user_detail', args=[AccountsTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 401)

    def test_csrf_sets_cookie(self):
        response = self.unauthenticated_client.get(reverse('csrf'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('csrftoken', response.cookies)

    # Profile

    def test_user_detail(self):
        response = self.authenticated_client.get(reverse('user_detail', args=[AccountsTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['id'], AccountsTestCase.test_user.pk)
        self.assertEqual(data['displayName'], 'testuser')
        self.assertIsNotNone(data['createdAt'])

    def test_user_detail_other_user(self):
        response = self.authenticated_client.get(reverse('user_detail', args=[AccountsTestCase.random_user.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "User not found"})

    def test_user_detail_unauthenticated(self):
        response = self.unauthenticated_client.get(reverse('user_detail', args=[AccountsTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Authentication required"})

    def test_health_check(self):
        response = self.unauthenticated_client.get(reverse('health'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})


class UsernameOrEmailBackendTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='backenduser', password='password',
                                            email='backend@gmail.com')

    def setUp(self):
        self.backend = UsernameOrEmailBackend()

    def test_authenticate_with_username(self):
        self.assertEqual(self.backend.authenticate(None, username='backenduser', password='password'),
                         UsernameOrEmailBackendTestCase.user)

    def test_authenticate_with_email_any_case(self):
        self.assertEqual(self.backend.authenticate(None, username='BACKEND@gmail.com', password='password'),
                         UsernameOrEmailBackendTestCase.user)

    def test_authenticate_wrong_password(self):
        self.assertIsNone(self.backend.authenticate(None, username='backenduser', password='nope'))

    def test_authenticate_missing_credentials(self):
        self.assertIsNone(self.backend.authenticate(None, username=None, password='password'))

    def test_get_user(self):
        self.assertEqual(self.backend.get_user(UsernameOrEmailBackendTestCase.user.pk),
                         UsernameOrEmailBackendTestCase.user)
        self.assertIsNone(self.backend.get_user(999999))

    def test_username_match_wins_over_other_users_email(self):
        # someone registered with an e-mail that is another user's username
        User.objects.create_user(username='clash', password='other', email='backenduser')

        self.assertEqual(self.backend.authenticate(None, username='backenduser', password='password'),
                         UsernameOrEmailBackendTestCase.user)
        self.assertEqual(self.backend.authenticate(None, username='backenduser', password='other').username,
                         'clash')

    def test_inactive_user_authenticates_but_has_no_session(self):
        inactive = User.objects.create_user(username='sleeper', password='password', is_active=False)

        self.assertEqual(self.backend.authenticate(None, username='sleeper', password='password'), inactive)
        self.assertIsNone(self.backend.get_user(inactive.pk))
