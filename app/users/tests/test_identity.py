import uuid
from django.test import TestCase
from rest_framework.test import APIRequestFactory
from django.contrib.auth.models import AnonymousUser

from users.identity import RequestIdentity
from factories.users import ClientUserFactory, PsychologistUserFactory, AdminUserFactory


class RequestIdentityTest(TestCase):

    def test_roles_follow_user_type(self):
        self.assertTrue(RequestIdentity.from_user(ClientUserFactory()).is_client)
        self.assertTrue(RequestIdentity.from_user(PsychologistUserFactory()).is_psychologist)
        self.assertTrue(RequestIdentity.from_user(AdminUserFactory()).is_admin)

    def test_staff_user_acts_as_admin(self):
        user = PsychologistUserFactory(is_staff=True)
        self.assertTrue(RequestIdentity.from_user(user).is_admin)

    def test_from_request(self):
        user = ClientUserFactory()
        request = APIRequestFactory().get('/')
        request.user = user

        identity = RequestIdentity.from_request(request)

        self.assertEqual(identity.user_id, user.id)

    def test_anonymous_request_has_no_identity(self):
        request = APIRequestFactory().get('/')
        request.user = AnonymousUser()

        self.assertIsNone(RequestIdentity.from_request(request))

    def test_system_identity(self):
        identity = RequestIdentity.system()

        self.assertTrue(identity.is_admin)
        self.assertEqual(identity.user_id, uuid.UUID(int=0))
