import os
import shutil
import tempfile
from unittest.mock import patch

from django.test import TestCase, Client, override_settings
from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from materials.helpers import extract_text_from_file, generate_summary, get_document_loader
from materials.models import Material, Summary
from study_aid.exceptions import ExtractionFailure, GenerationFailure

MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class MaterialsTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.test_user = User.objects.create_user(username='testuser', password='password')

        cls.random_user = User.objects.create_user(username='randomuser', password='random')

        cls.material = Material.objects.create(user=cls.test_user, title='Photosynthesis notes', file_type='txt',
                                               subject='Biology',
                                               content='Plants turn light into chemical energy.')

        cls.empty_material = Material.objects.create(user=cls.test_user, title='Blank scan', file_type='pdf',
                                                     content='   ')

        cls.random_material = Material.objects.create(user=cls.random_user, title='Random notes',
                                                      file_type='txt', content='Someone else wrote this.')

        cls.summary = Summary.objects.create(user=cls.test_user, material=cls.material,
                                             title='Summary: Photosynthesis notes',
                                             content='Light becomes sugar.')

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        # Every test needs a client.
        self.authenticated_client = Client()
        self.authenticated_client.login(username='testuser', password='password')
        self.unauthenticated_client = Client()

    # Upload

    def test_upload_text_material(self):
        upload = SimpleUploadedFile('cells.txt', b'Cells are the basic unit of life.', content_type='text/plain')

        response = self.authenticated_client.post(reverse('upload_material'), {
            'file': upload,
            'title': 'Cell biology',
            'subject': 'Biology',
        })
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data['title'], 'Cell biology')
        self.assertEqual(data['fileType'], 'txt')
        self.assertEqual(data['content'], 'Cells are the basic unit of life.')
        self.assertEqual(data['userId'], MaterialsTestCase.test_user.pk)
        self.assertIsNotNone(data['fileUrl'])

        material = Material.objects.get(pk=data['id'])
        self.assertTrue(material.upload_file.name.startswith(f'user_{MaterialsTestCase.test_user.pk}/'))

    def test_upload_title_defaults_to_file_name(self):
        upload = SimpleUploadedFile('notes.txt', b'Some notes.', content_type='text/plain')

        response = self.authenticated_client.post(reverse('upload_material'), {'file': upload})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['title'], 'notes.txt')

    def test_upload_unsupported_extension(self):
        upload = SimpleUploadedFile('slides.pptx', b'not really slides')

        response = self.authenticated_client.post(reverse('upload_material'), {'file': upload})
        self.assertEqual(response.status_code, 400)
        self.assertIn('file', response.json()['form_errors'])
        self.assertFalse(Material.objects.filter(title='slides.pptx').exists())

    def test_upload_without_file(self):
        response = self.authenticated_client.post(reverse('upload_material'), {'title': 'No file'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('file', response.json()['form_errors'])

    @override_settings(MAX_UPLOAD_SIZE=10)
    def test_upload_file_too_large(self):
        upload = SimpleUploadedFile('big.txt', b'This is more than ten bytes.', content_type='text/plain')

        response = self.authenticated_client.post(reverse('upload_material'), {'file': upload})
        self.assertEqual(response.status_code, 400)
        self.assertIn('file', response.json()['form_errors'])

    @patch('materials.helpers.extract_text_from_upload')
    def test_upload_extraction_failure(self, extract_text):
        extract_text.side_effect = ExtractionFailure("Failed to extract text from PDF file")
        upload = SimpleUploadedFile('broken.pdf', b'%PDF-broken', content_type='application/pdf')
        count_before = Material.objects.count()

        response = self.authenticated_client.post(reverse('upload_material'), {'file': upload})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json(), {"error": "Failed to extract text from PDF file"})
        self.assertEqual(Material.objects.count(), count_before)

    def test_upload_unauthenticated(self):
        upload = SimpleUploadedFile('cells.txt', b'Cells.', content_type='text/plain')

        response = self.unauthenticated_client.post(reverse('upload_material'), {'file': upload})
        self.assertEqual(response.status_code, 401)

    # Retrieval

    def test_get_material_detail(self):
        response = self.authenticated_client.get(reverse('material_detail', args=[MaterialsTestCase.material.pk]))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['title'], 'Photosynthesis notes')
        self.assertEqual(data['subject'], 'Biology')
        self.assertIsNone(data['fileUrl'])

    def test_get_other_users_material(self):
        response = self.authenticated_client.get(reverse('material_detail',
                                                         args=[MaterialsTestCase.random_material.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Material not found"})

    def test_get_user_materials(self):
        response = self.authenticated_client.get(reverse('user_materials', args=[MaterialsTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 200)
        ids = {m['id'] for m in response.json()}
        self.assertEqual(ids, {MaterialsTestCase.material.pk, MaterialsTestCase.empty_material.pk})

    def test_get_other_user_materials_fail(self):
        response = self.authenticated_client.get(reverse('user_materials', args=[MaterialsTestCase.random_user.pk]))
        self.assertEqual(response.status_code, 404)

    # Summaries

    @patch('materials.helpers.generate_summary')
    def test_create_summary(self, summarise):
        summarise.return_value = 'Plants make sugar from light.'

        response = self.authenticated_client.post(reverse('material_summaries',
                                                          args=[MaterialsTestCase.material.pk]))
        self.assertEqual(response.status_code, 201)

        data = response.json()
        self.assertEqual(data['title'], 'Summary: Photosynthesis notes')
        self.assertEqual(data['content'], 'Plants make sugar from light.')
        self.assertEqual(data['materialId'], MaterialsTestCase.material.pk)
        summarise.assert_called_once_with(text='Plants turn light into chemical energy.',
                                          title='Photosynthesis notes')

    @patch('materials.helpers.generate_summary')
    def test_create_summary_generation_failure(self, summarise):
        summarise.side_effect = GenerationFailure("Failed to generate summary")
        count_before = Summary.objects.count()

        response = self.authenticated_client.post(reverse('material_summaries',
                                                          args=[MaterialsTestCase.material.pk]))
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json(), {"error": "Failed to generate summary"})
        self.assertEqual(Summary.objects.count(), count_before)

    @patch('materials.helpers.generate_summary')
    def test_create_summary_material_without_content(self, summarise):
        response = self.authenticated_client.post(reverse('material_summaries',
                                                          args=[MaterialsTestCase.empty_material.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Material has no extracted content"})
        summarise.assert_not_called()

    @patch('materials.helpers.generate_summary')
    def test_create_summary_other_users_material(self, summarise):
        response = self.authenticated_client.post(reverse('material_summaries',
                                                          args=[MaterialsTestCase.random_material.pk]))
        self.assertEqual(response.status_code, 404)
        summarise.assert_not_called()

    def test_get_material_summaries(self):
        response = self.authenticated_client.get(reverse('material_summaries',
                                                         args=[MaterialsTestCase.material.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s['id'] for s in response.json()], [MaterialsTestCase.summary.pk])

    def test_get_summary_detail(self):
        response = self.authenticated_client.get(reverse('summary_detail', args=[MaterialsTestCase.summary.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['content'], 'Light becomes sugar.')

    def test_get_summary_detail_not_found(self):
        response = self.authenticated_client.get(reverse('summary_detail', args=[999999]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Summary not found"})

    def test_get_user_summaries(self):
        response = self.authenticated_client.get(reverse('user_summaries', args=[MaterialsTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 1)

    def test_get_summary_unauthenticated(self):
        response = self.unauthenticated_client.get(reverse('summary_detail', args=[MaterialsTestCase.summary.pk]))
        self.assertEqual(response.status_code, 401)


class MaterialHelpersTestCase(TestCase):

    def test_extract_text_from_txt_file(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False, encoding='utf-8') as f:
            f.write('Mitochondria are the powerhouse of the cell.\n')

        try:
            self.assertEqual(extract_text_from_file(f.name, 'txt'),
                             'Mitochondria are the powerhouse of the cell.')
        finally:
            os.remove(f.name)

    def test_unsupported_loader(self):
        with self.assertRaises(ExtractionFailure):
            get_document_loader('/tmp/slides.pptx', 'pptx')

    @patch('materials.helpers.ChatOpenAI')
    def test_generate_summary(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=['  Key points about photosynthesis.  '])

        self.assertEqual(generate_summary('Plants and light.', 'Photosynthesis'),
                         'Key points about photosynthesis.')

    @patch('materials.helpers.ChatOpenAI')
    def test_generate_summary_empty_output(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=['   '])

        with self.assertRaises(GenerationFailure):
            generate_summary('Plants and light.', 'Photosynthesis')

    @patch('materials.helpers.ChatOpenAI')
    def test_generate_summary_model_error(self, chat_model):
        chat_model.side_effect = ValueError("Missing API key")

        with self.assertRaises(GenerationFailure) as cm:
            generate_summary('Plants and light.', 'Photosynthesis')
        self.assertEqual(cm.exception.message, "Failed to generate summary")
