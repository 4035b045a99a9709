"""
JSON API: auth, ownership scoping, draft lifecycle and exports.
"""

import io

import pytest

from models import db, Draft, User


def create_business(client, headers, **overrides):
    payload = {'name': 'Acme Trading', 'address': '12 Market Street\nMetropolis'}
    payload.update(overrides)
    response = client.post('/businesses', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def create_recipient(client, headers, **overrides):
    payload = {'name': 'Globex Ltd', 'address': '1 Cypress Creek', 'contact_person': 'Hank Scorpio'}
    payload.update(overrides)
    response = client.post('/recipients', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def create_draft(client, headers, **payload):
    response = client.post('/drafts', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


@pytest.fixture
def complete_draft(client, auth_headers):
    business = create_business(client, auth_headers)
    recipient = create_recipient(client, auth_headers)
    return create_draft(client, auth_headers, business_id=business['id'], recipient_id=recipient['id'],
                        ref_no='ACME/14', date='2026-01-05', subject='Offer Letter',
                        content='<p>Dear Hank,</p>')


class TestAuth:

    def test_register_and_login(self, client):
        response = client.post('/auth/register', json={
            'email': 'New.Writer@Letters.com', 'name': 'New Writer', 'password': 'password123'
        })
        assert response.status_code == 201
        assert response.get_json()['user']['email'] == 'new.writer@letters.com'

        response = client.post('/auth/login', json={'email': 'new.writer@letters.com', 'password': 'password123'})
        assert response.status_code == 200
        token = response.get_json()['access_token']

        me = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})
        assert me.status_code == 200
        assert me.get_json()['name'] == 'New Writer'

    def test_register_validation(self, client):
        response = client.post('/auth/register', json={'email': 'not-an-email', 'name': '', 'password': 'x'})
        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert set(body['fields']) == {'email', 'name', 'password'}

    def test_duplicate_email(self, client, auth_headers):
        response = client.post('/auth/register', json={
            'email': 'writer@letters.com', 'name': 'Again', 'password': 'password123'
        })
        assert response.status_code == 400

    def test_wrong_password(self, client, auth_headers):
        response = client.post('/auth/login', json={'email': 'writer@letters.com', 'password': 'nope'})
        assert response.status_code == 401

    def test_unauthenticated_is_401(self, client):
        response = client.get('/drafts')
        assert response.status_code == 401
        assert response.get_json() == {'success': False, 'error': 'Authentication required'}

    def test_bad_token_is_401(self, client):
        assert client.get('/auth/me', headers={'Authorization': 'Bearer forged'}).status_code == 401

    def test_approval_required(self, app, client):
        app.config['REQUIRE_ACCOUNT_APPROVAL'] = True
        client.post('/auth/register', json={
            'email': 'pending@letters.com', 'name': 'Pending', 'password': 'password123'
        })
        response = client.post('/auth/login', json={'email': 'pending@letters.com', 'password': 'password123'})
        assert response.status_code == 403

        runner = app.test_cli_runner()
        result = runner.invoke(args=['approve-user', 'pending@letters.com'])
        assert 'Approved pending@letters.com' in result.output

        response = client.post('/auth/login', json={'email': 'pending@letters.com', 'password': 'password123'})
        assert response.status_code == 200

    def test_held_account_token_rejected(self, app, client, auth_headers):
        with app.app_context():
            user = User.query.filter_by(email='writer@letters.com').first()
            user.is_held = True
            db.session.commit()
        assert client.get('/auth/me', headers=auth_headers).status_code == 401


class TestBusinessesAndRecipients:

    def test_business_crud(self, client, auth_headers):
        business = create_business(client, auth_headers, header_image='/uploads/h.png')
        assert business['header_image'] == '/uploads/h.png'

        response = client.patch(f"/businesses/{business['id']}", json={'phone': '555-0100'}, headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['phone'] == '555-0100'
        assert response.get_json()['name'] == 'Acme Trading'

        listing = client.get('/businesses', headers=auth_headers).get_json()
        assert [b['id'] for b in listing] == [business['id']]

        assert client.delete(f"/businesses/{business['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/businesses/{business['id']}", headers=auth_headers).status_code == 404

    def test_business_requires_name_and_address(self, client, auth_headers):
        response = client.post('/businesses', json={'name': 'No Address'}, headers=auth_headers)
        assert response.status_code == 400
        assert 'address' in response.get_json()['fields']

    def test_patch_cannot_blank_required_field(self, client, auth_headers):
        business = create_business(client, auth_headers)
        response = client.patch(f"/businesses/{business['id']}", json={'name': ''}, headers=auth_headers)
        assert response.status_code == 400

    def test_recipient_crud(self, client, auth_headers):
        recipient = create_recipient(client, auth_headers)
        assert recipient['contact_person'] == 'Hank Scorpio'

        response = client.patch(f"/recipients/{recipient['id']}", json={'contact_person': None},
                                headers=auth_headers)
        assert response.get_json()['contact_person'] is None
        assert client.delete(f"/recipients/{recipient['id']}", headers=auth_headers).status_code == 200

    def test_other_users_records_are_404(self, client, auth_headers, other_headers):
        business = create_business(client, auth_headers)
        recipient = create_recipient(client, auth_headers)

        assert client.get(f"/businesses/{business['id']}", headers=other_headers).status_code == 404
        assert client.patch(f"/businesses/{business['id']}", json={'name': 'Mine'},
                            headers=other_headers).status_code == 404
        assert client.delete(f"/recipients/{recipient['id']}", headers=other_headers).status_code == 404
        assert client.get('/businesses', headers=other_headers).get_json() == []


class TestDrafts:

    def test_create_defaults(self, client, auth_headers):
        draft = create_draft(client, auth_headers, subject='Hello')
        assert draft['status'] == 'DRAFT'
        assert draft['include_seal'] is False
        assert draft['layout'] is None
        assert draft['business'] is None

    def test_get_populates_references(self, client, auth_headers, complete_draft):
        draft = client.get(f"/drafts/{complete_draft['id']}", headers=auth_headers).get_json()
        assert draft['business']['name'] == 'Acme Trading'
        assert draft['recipient']['name'] == 'Globex Ltd'
        assert draft['date'] == '2026-01-05'

    def test_list_filters(self, client, auth_headers):
        create_draft(client, auth_headers, subject='Invoice reminder')
        second = create_draft(client, auth_headers, subject='Welcome aboard')
        client.patch(f"/drafts/{second['id']}", json={'status': 'FINAL'}, headers=auth_headers)

        finals = client.get('/drafts?status=FINAL', headers=auth_headers).get_json()
        assert [d['id'] for d in finals] == [second['id']]

        found = client.get('/drafts?q=invoice', headers=auth_headers).get_json()
        assert [d['subject'] for d in found] == ['Invoice reminder']

        assert client.get('/drafts?status=SENT', headers=auth_headers).status_code == 400

    def test_list_searches_recipient_name(self, client, auth_headers, complete_draft):
        create_draft(client, auth_headers, subject='Hello')

        found = client.get('/drafts?q=globex', headers=auth_headers).get_json()
        assert [d['id'] for d in found] == [complete_draft['id']]
        assert found[0]['recipient']['name'] == 'Globex Ltd'
        assert found[0]['business']['name'] == 'Acme Trading'

    def test_list_populates_references(self, client, auth_headers, complete_draft):
        drafts = client.get('/drafts', headers=auth_headers).get_json()
        assert drafts[0]['recipient']['name'] == 'Globex Ltd'

    def test_patch_layout_stored_verbatim(self, client, auth_headers, complete_draft):
        layout = {'seal': {'x': 120.5, 'y': 230, 'hidden': True}, 'watermark': {'x': 1, 'y': 1}}
        response = client.patch(f"/drafts/{complete_draft['id']}", json={'layout': layout}, headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['layout'] == layout

    def test_patch_rejects_bad_layout(self, client, auth_headers, complete_draft):
        response = client.patch(f"/drafts/{complete_draft['id']}",
                                json={'layout': {'ref': {'x': 'left', 'y': 0}}}, headers=auth_headers)
        assert response.status_code == 400
        assert 'ref.x' in response.get_json()['error']

    def test_patch_rejects_string_hidden_flag(self, client, auth_headers, complete_draft):
        response = client.patch(f"/drafts/{complete_draft['id']}",
                                json={'layout': {'ref': {'x': 20, 'y': 50, 'hidden': 'false'}}},
                                headers=auth_headers)
        assert response.status_code == 400
        assert 'ref.hidden' in response.get_json()['error']
        draft = client.get(f"/drafts/{complete_draft['id']}", headers=auth_headers).get_json()
        assert draft['layout'] is None

    @pytest.mark.parametrize('payload', [
        {'date': 'yesterday'},
        {'include_seal': 'yes'},
        {'status': 'ARCHIVED'},
        {'subject': 42},
    ])
    def test_patch_validation(self, client, auth_headers, complete_draft, payload):
        response = client.patch(f"/drafts/{complete_draft['id']}", json=payload, headers=auth_headers)
        assert response.status_code == 400

    def test_cannot_reference_other_users_business(self, client, auth_headers, other_headers):
        foreign = create_business(client, other_headers)
        draft = create_draft(client, auth_headers, subject='Mine')
        response = client.patch(f"/drafts/{draft['id']}", json={'business_id': foreign['id']},
                                headers=auth_headers)
        assert response.status_code == 400

    def test_other_users_draft_is_404(self, client, auth_headers, other_headers, complete_draft):
        draft_id = complete_draft['id']
        assert client.get(f'/drafts/{draft_id}', headers=other_headers).status_code == 404
        assert client.patch(f'/drafts/{draft_id}', json={'subject': 'x'}, headers=other_headers).status_code == 404
        assert client.get(f'/drafts/{draft_id}/export.pdf', headers=other_headers).status_code == 404
        assert client.get('/drafts', headers=other_headers).get_json() == []

    def test_clone_forces_draft_and_copies_layout(self, app, client, auth_headers, complete_draft):
        draft_id = complete_draft['id']
        layout = {'content': {'x': 22, 'y': 135, 'w': 160}, 'ref': {'x': 20, 'y': 50, 'hidden': True}}
        client.patch(f'/drafts/{draft_id}', json={'layout': layout, 'include_seal': True}, headers=auth_headers)
        client.post(f'/drafts/{draft_id}/finalize', headers=auth_headers)

        response = client.post(f'/drafts/{draft_id}/clone', headers=auth_headers)
        assert response.status_code == 201
        clone = response.get_json()
        assert clone['id'] != draft_id
        assert clone['status'] == 'DRAFT'
        assert clone['subject'] == 'Offer Letter (Copy)'
        assert clone['layout'] == layout
        assert clone['include_seal'] is True
        assert clone['business_id'] == complete_draft['business_id']

        with app.app_context():
            assert db.session.get(Draft, draft_id).status == 'FINAL'

    def test_finalize_is_one_way(self, client, auth_headers, complete_draft):
        draft_id = complete_draft['id']
        response = client.post(f'/drafts/{draft_id}/finalize', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['status'] == 'FINAL'

        assert client.post(f'/drafts/{draft_id}/finalize', headers=auth_headers).status_code == 409
        assert client.patch(f'/drafts/{draft_id}', json={'status': 'DRAFT'}, headers=auth_headers).status_code == 409
        assert client.patch(f'/drafts/{draft_id}', json={'subject': 'x'}, headers=auth_headers).status_code == 409
        assert client.delete(f'/drafts/{draft_id}/layout', headers=auth_headers).status_code == 409

    def test_finalize_needs_references(self, client, auth_headers):
        draft = create_draft(client, auth_headers, subject='Incomplete')
        response = client.post(f"/drafts/{draft['id']}/finalize", headers=auth_headers)
        assert response.status_code == 422

    def test_reset_layout(self, client, auth_headers, complete_draft):
        draft_id = complete_draft['id']
        client.patch(f'/drafts/{draft_id}', json={'layout': {'ref': {'x': 1, 'y': 2}}}, headers=auth_headers)
        response = client.delete(f'/drafts/{draft_id}/layout', headers=auth_headers)
        assert response.status_code == 200
        assert response.get_json()['layout'] is None

    def test_delete(self, client, auth_headers, complete_draft):
        draft_id = complete_draft['id']
        assert client.delete(f'/drafts/{draft_id}', headers=auth_headers).status_code == 200
        assert client.get(f'/drafts/{draft_id}', headers=auth_headers).status_code == 404

    def test_deleting_business_keeps_draft(self, client, auth_headers, complete_draft):
        client.delete(f"/businesses/{complete_draft['business_id']}", headers=auth_headers)
        draft = client.get(f"/drafts/{complete_draft['id']}", headers=auth_headers).get_json()
        assert draft['business_id'] is None


class TestRendering:

    def test_preview(self, client, auth_headers, complete_draft):
        draft_id = complete_draft['id']
        client.patch(f'/drafts/{draft_id}', json={'layout': {'ref': {'x': 20, 'y': 50, 'hidden': True}}},
                     headers=auth_headers)

        normal = client.get(f'/drafts/{draft_id}/preview', headers=auth_headers)
        assert normal.status_code == 200
        assert normal.mimetype == 'text/html'
        html = normal.get_data(as_text=True)
        assert 'data-slot="ref"' not in html
        assert 'Subject: Offer Letter' in html

        custom = client.get(f'/drafts/{draft_id}/preview?customize=1&width=397', headers=auth_headers)
        html = custom.get_data(as_text=True)
        assert 'data-slot="ref"' in html
        assert 'HIDDEN' in html
        assert 'transform: scale(0.5)' in html

    def test_preview_missing_recipient_is_422(self, client, auth_headers):
        business = create_business(client, auth_headers)
        draft = create_draft(client, auth_headers, business_id=business['id'])
        response = client.get(f"/drafts/{draft['id']}/preview", headers=auth_headers)
        assert response.status_code == 422
        assert 'Recipient' in response.get_json()['error']

    def test_export_pdf(self, client, auth_headers, complete_draft):
        response = client.get(f"/drafts/{complete_draft['id']}/export.pdf", headers=auth_headers)
        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')
        assert response.headers['X-Page-Count'] == '1'
        assert 'Offer_Letter.pdf' in response.headers['Content-Disposition']

    def test_export_pdf_missing_business_is_422(self, client, auth_headers):
        draft = create_draft(client, auth_headers, subject='No refs')
        response = client.get(f"/drafts/{draft['id']}/export.pdf", headers=auth_headers)
        assert response.status_code == 422
        assert response.get_json()['error'].startswith('Draft has no Business selected')

    def test_export_docx_warns(self, client, auth_headers, complete_draft):
        response = client.get(f"/drafts/{complete_draft['id']}/export.docx", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers['X-Export-Warning'] == 'Custom layouts may not translate exactly to DOCX.'
        assert response.data[:2] == b'PK'


class TestUpload:

    def test_upload_returns_public_url(self, client, auth_headers, monkeypatch):
        from services import storage
        uploaded = {}

        def fake_upload(user_id, file_data, filename, content_type=None):
            uploaded.update(user_id=user_id, size=len(file_data), filename=filename)
            return {'path': f'users/{user_id}/x.png', 'url': 'https://cdn.letters.com/x.png', 'size': len(file_data)}

        monkeypatch.setattr(storage, 'upload_image', fake_upload)
        response = client.post('/upload', headers=auth_headers, content_type='multipart/form-data',
                               data={'file': (io.BytesIO(b'\x89PNG fake'), 'letter head.png')})

        assert response.status_code == 201
        assert response.get_json() == {'url': 'https://cdn.letters.com/x.png'}
        assert uploaded['filename'] == 'letter_head.png'

    def test_upload_rejects_non_images(self, client, auth_headers):
        response = client.post('/upload', headers=auth_headers, content_type='multipart/form-data',
                               data={'file': (io.BytesIO(b'MZ'), 'tool.exe')})
        assert response.status_code == 400

    def test_upload_requires_file(self, client, auth_headers):
        response = client.post('/upload', headers=auth_headers, content_type='multipart/form-data', data={})
        assert response.status_code == 400
