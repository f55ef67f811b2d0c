from django.test import TestCase

from clients.services import ClientService, ClientNotFoundError
from factories.users import ClientFactory, PsychologistUserFactory


class ClientServiceTest(TestCase):

    def test_get_client_by_user(self):
        client = ClientFactory()
        self.assertEqual(ClientService.get_client_by_user(client.user), client)

    def test_psychologist_user_has_no_client_profile(self):
        user = PsychologistUserFactory()
        self.assertIsNone(ClientService.get_client_by_user(user))
        with self.assertRaises(ClientNotFoundError):
            ClientService.get_client_by_user_or_raise(user)
