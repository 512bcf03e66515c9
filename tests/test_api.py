import base64
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import app, validate_file_upload, sanitize_filename


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    body = response.json()
    assert body['status'] == 'healthy'
    assert body['rectifier_ready'] is True


def test_rectify_returns_png(client, page_png):
    response = client.post('/api/rectify', files={'file': ('page.png', page_png, 'image/png')})
    assert response.status_code == 200
    assert response.headers['content-type'] == 'image/png'
    document = Image.open(BytesIO(response.content))
    width, height = document.size
    assert width % 4 == 0
    assert 1.2 < height / width < 1.45


def test_rectify_json_response(client, page_png):
    response = client.post('/api/rectify', params={'response_format': 'json'},
                           files={'file': ('scan.jpg', page_png, 'image/jpeg')})
    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert len(body['corners']) == 4
    document = Image.open(BytesIO(base64.b64decode(body['image'])))
    assert list(document.size) == body['output_size']


def test_rectify_rejects_bad_requests(client, page_png):
    response = client.post('/api/rectify', files={'file': ('notes.txt', page_png, 'text/plain')})
    assert response.status_code == 400
    assert response.json()['success'] is False

    response = client.post('/api/rectify', params={'response_format': 'tiff'},
                           files={'file': ('page.png', page_png, 'image/png')})
    assert response.status_code == 400


def test_rectify_error_mapping(client, blank_png):
    response = client.post('/api/rectify', files={'file': ('blank.png', blank_png, 'image/png')})
    assert response.status_code == 422
    assert 'Hough' in response.json()['error']

    response = client.post('/api/rectify', files={'file': ('broken.png', b'not a png', 'image/png')})
    assert response.status_code == 415


def test_upload_validation():
    assert validate_file_upload('page.png', 10) == (True, None)
    assert validate_file_upload('page.png', 0)[0] is False
    assert validate_file_upload('page.png', 51 * 1024 * 1024)[0] is False
    assert validate_file_upload('archive.zip', 10)[0] is False
    assert sanitize_filename('../../etc/pa ss.png') == 'pa_ss.png'
