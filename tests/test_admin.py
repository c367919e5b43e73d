"""
Tests for the admin dashboard CRUD views.
"""

import io
from datetime import date
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from hopeconnect.database import db
from hopeconnect.models import (
    AwarenessResource, BlogPost, Comment, Event, GalleryImage, Project, RSVP, TeamMember,
    Testimony, VolunteerApplication,
)

PNG = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


def post_form(**overrides):
    data = {'title': 'New post', 'excerpt': 'Short', 'content': 'Body', 'category': 'prevention-tips',
            'author': 'Staff', 'status': 'draft', 'linked_event_id': ''}
    data.update(overrides)
    return data


def event_form(**overrides):
    data = {'title': 'Workshop', 'description': 'Learn', 'date': '2030-05-18', 'time': '10:00 AM',
            'location': 'Wellness Center', 'type': 'workshop', 'capacity': '40'}
    data.update(overrides)
    return data


def test_admin_pages_render(admin_client):
    for path in ('/admin/', '/admin/posts', '/admin/posts/new', '/admin/comments', '/admin/events',
                 '/admin/events/new', '/admin/testimonies', '/admin/testimonies/new', '/admin/team',
                 '/admin/team/new', '/admin/projects', '/admin/projects/new', '/admin/gallery',
                 '/admin/resources', '/admin/volunteers', '/admin/users'):
        assert admin_client.get(path).status_code == 200, path


def test_dashboard_counts(admin_client, make_post, make_comment, make_testimony):
    post_id = make_post(title='Most discussed')
    make_comment(post_id, status='approved')
    make_comment(post_id, status='pending')
    make_testimony(status='pending')

    body = admin_client.get('/admin/').get_data(as_text=True)
    assert '1 pending comments' in body
    assert '1 pending testimonies' in body
    assert 'Most discussed' in body


# --- Blog posts ---

def test_create_post(admin_client, app):
    response = admin_client.post('/admin/posts/new', data=post_form(status='published'))
    assert response.status_code == 302
    with app.app_context():
        post = BlogPost.query.one()
        assert post.title == 'New post'
        assert post.is_published
        assert post.linked_event_id is None


def test_create_post_with_image_and_linked_event(admin_client, app, make_event):
    event_id = make_event()
    data = post_form(linked_event_id=str(event_id))
    data['image_file'] = (io.BytesIO(PNG), 'cover.png')
    admin_client.post('/admin/posts/new', data=data, content_type='multipart/form-data')

    with app.app_context():
        post = BlogPost.query.one()
        assert post.linked_event_id == event_id
        assert post.image.startswith('/uploads/blog/')
        assert post.image.endswith('.png')


def test_create_post_validation(admin_client, app):
    response = admin_client.post('/admin/posts/new', data=post_form(title=''))
    assert response.status_code == 400
    response = admin_client.post('/admin/posts/new', data=post_form(status='archived'))
    assert response.status_code == 400
    response = admin_client.post('/admin/posts/new', data=post_form(linked_event_id='999'))
    assert response.status_code == 400
    with app.app_context():
        assert BlogPost.query.count() == 0


def test_edit_post(admin_client, app, make_post):
    post_id = make_post(title='Old title')
    admin_client.post(f'/admin/posts/{post_id}/edit', data=post_form(title='New title', status='published'))
    with app.app_context():
        assert db.session.get(BlogPost, post_id).title == 'New title'


def test_edit_post_validation_keeps_row(admin_client, app, make_post):
    post_id = make_post(title='Keep me')
    response = admin_client.post(f'/admin/posts/{post_id}/edit', data=post_form(title='Changed', category='bogus'))
    assert response.status_code == 400
    with app.app_context():
        assert db.session.get(BlogPost, post_id).title == 'Keep me'


def test_delete_post(admin_client, app, make_post, make_comment):
    post_id = make_post()
    make_comment(post_id)
    admin_client.post(f'/admin/posts/{post_id}/delete')
    with app.app_context():
        assert BlogPost.query.count() == 0
        assert Comment.query.count() == 0


# --- Comments ---

def test_comment_moderation(admin_client, client, app, make_post, make_comment):
    post_id = make_post()
    comment_id = make_comment(post_id, content='Thanks for raising awareness')

    body = admin_client.get('/admin/comments?status=pending').data
    assert b'Thanks for raising awareness' in body

    admin_client.post(f'/admin/comments/{comment_id}/status', data={'status': 'approved'})
    with app.app_context():
        assert db.session.get(Comment, comment_id).status == 'approved'
    assert b'Thanks for raising awareness' in client.get(f'/blogs/{post_id}').data

    admin_client.post(f'/admin/comments/{comment_id}/status', data={'status': 'rejected'})
    assert b'Thanks for raising awareness' not in client.get(f'/blogs/{post_id}').data


def test_comment_invalid_status(admin_client, app, make_post, make_comment):
    comment_id = make_comment(make_post())
    admin_client.post(f'/admin/comments/{comment_id}/status', data={'status': 'spam'})
    with app.app_context():
        assert db.session.get(Comment, comment_id).status == 'pending'


# --- Events ---

def test_create_event(admin_client, app):
    admin_client.post('/admin/events/new', data=event_form())
    with app.app_context():
        event = Event.query.one()
        assert event.date == date(2030, 5, 18)
        assert event.capacity == 40
        assert event.registered == 0


def test_create_event_rejects_bad_input(admin_client, app):
    assert admin_client.post('/admin/events/new', data=event_form(date='18/05/2030')).status_code == 400
    assert admin_client.post('/admin/events/new', data=event_form(capacity='lots')).status_code == 400
    assert admin_client.post('/admin/events/new', data=event_form(type='party')).status_code == 400
    with app.app_context():
        assert Event.query.count() == 0


def test_edit_event_keeps_registrations(admin_client, app, make_event):
    event_id = make_event(registered=3)
    admin_client.post(f'/admin/events/{event_id}/edit', data=event_form(title='Renamed', capacity='50'))
    with app.app_context():
        event = db.session.get(Event, event_id)
        assert event.title == 'Renamed'
        assert event.capacity == 50
        assert event.registered == 3


def test_delete_event_removes_rsvps_and_unlinks_recaps(admin_client, app, make_event, make_post):
    event_id = make_event()
    post_id = make_post(linked_event_id=event_id)
    with app.app_context():
        db.session.add(RSVP(event_id=event_id, name='Ann', email='ann@example.com', phone='555'))
        db.session.commit()

    admin_client.post(f'/admin/events/{event_id}/delete')

    with app.app_context():
        assert Event.query.count() == 0
        assert RSVP.query.count() == 0
        assert db.session.get(BlogPost, post_id).linked_event_id is None


def test_event_rsvp_list(admin_client, app, make_event):
    event_id = make_event()
    with app.app_context():
        db.session.add(RSVP(event_id=event_id, name='Ann Lee', email='ann@example.com', phone='555'))
        db.session.commit()
    assert b'ann@example.com' in admin_client.get(f'/admin/events/{event_id}/rsvps').data


# --- Testimonies ---

def test_testimony_tabs_and_approval(admin_client, app, make_testimony):
    pending_id = make_testimony(name='Waiting Story', status='pending')
    make_testimony(name='Live Story', status='approved')

    body = admin_client.get('/admin/testimonies').data
    assert b'Waiting Story' in body and b'Live Story' not in body
    assert b'Pending (1)' in body and b'Approved (1)' in body

    admin_client.post(f'/admin/testimonies/{pending_id}/status', data={'status': 'approved'})
    with app.app_context():
        assert db.session.get(Testimony, pending_id).status == 'approved'


def test_create_edit_delete_testimony(admin_client, app):
    admin_client.post('/admin/testimonies/new', data={
        'name': 'Rita', 'story': 'Story', 'category': 'caregiver', 'cancer_type': 'Lung Cancer',
        'status': 'approved',
    })
    with app.app_context():
        entry = Testimony.query.one()
        entry_id = entry.id
        assert entry.status == 'approved'

    admin_client.post(f'/admin/testimonies/{entry_id}/edit', data={
        'name': 'Rita M.', 'story': 'Story', 'category': 'caregiver', 'cancer_type': 'Lung Cancer',
    })
    with app.app_context():
        entry = db.session.get(Testimony, entry_id)
        assert entry.name == 'Rita M.'
        assert entry.status == 'approved'

    admin_client.post(f'/admin/testimonies/{entry_id}/delete')
    with app.app_context():
        assert Testimony.query.count() == 0


# --- Team and projects ---

def test_team_crud(admin_client, app):
    admin_client.post('/admin/team/new', data={'name': 'Ada', 'role': 'Director', 'bio': 'Leads', 'order_index': '2'})
    with app.app_context():
        member = TeamMember.query.one()
        member_id = member.id
        assert member.order_index == 2

    response = admin_client.post(f'/admin/team/{member_id}/edit',
                                 data={'name': 'Ada', 'role': 'Director', 'bio': 'Leads', 'order_index': 'first'})
    assert response.status_code == 400

    admin_client.post(f'/admin/team/{member_id}/edit',
                      data={'name': 'Ada L.', 'role': 'Director', 'bio': 'Leads', 'order_index': '0'})
    with app.app_context():
        assert db.session.get(TeamMember, member_id).name == 'Ada L.'

    admin_client.post(f'/admin/team/{member_id}/delete')
    with app.app_context():
        assert TeamMember.query.count() == 0


def test_project_crud(admin_client, app):
    data = {'title': 'Screening Camps', 'description': 'Mobile camps', 'category': 'awareness', 'status': 'planned'}
    admin_client.post('/admin/projects/new', data=data)
    with app.app_context():
        project_id = Project.query.one().id

    admin_client.post(f'/admin/projects/{project_id}/edit', data=dict(data, status='completed'))
    with app.app_context():
        assert db.session.get(Project, project_id).status == 'completed'

    assert admin_client.post('/admin/projects/new', data=dict(data, category='space')).status_code == 400

    admin_client.post(f'/admin/projects/{project_id}/delete')
    with app.app_context():
        assert Project.query.count() == 0


def test_image_upload_rejects_non_images(admin_client, app):
    data = {'title': 'Camps', 'description': 'x', 'category': 'awareness', 'status': 'planned',
            'image_file': (io.BytesIO(b'%PDF-1.4'), 'brochure.pdf')}
    response = admin_client.post('/admin/projects/new', data=data, content_type='multipart/form-data')
    assert response.status_code == 400
    assert b'Please select an image file' in response.data
    with app.app_context():
        assert Project.query.count() == 0


# --- Gallery ---

def test_gallery_upload_many_with_new_tag(admin_client, app):
    data = {
        'new_tag': '  Awareness Walk ',
        'title': 'Walk 2024',
        'image_files': [(io.BytesIO(PNG), 'one.png'), (io.BytesIO(PNG), 'two.png')],
    }
    admin_client.post('/admin/gallery/new', data=data, content_type='multipart/form-data')

    with app.app_context():
        images = GalleryImage.query.all()
        assert len(images) == 2
        assert {img.tag for img in images} == {'awareness walk'}
        assert all(img.image_url.startswith('/uploads/gallery/') for img in images)


def test_gallery_requires_image_and_tag(admin_client, app):
    admin_client.post('/admin/gallery/new', data={'tag': 'walk'})
    admin_client.post('/admin/gallery/new', data={'image_url': 'https://cdn.example.com/a.jpg'})
    with app.app_context():
        assert GalleryImage.query.count() == 0


def stored_files(app):
    return [p for p in Path(app.config['UPLOAD_FOLDER']).rglob('*') if p.is_file()]


def test_gallery_failed_batch_leaves_no_files(admin_client, app):
    data = {
        'tag': 'walk',
        'image_files': [(io.BytesIO(PNG), 'one.png'), (io.BytesIO(b'%PDF'), 'two.pdf')],
    }
    response = admin_client.post('/admin/gallery/new', data=data, content_type='multipart/form-data',
                                 follow_redirects=True)
    assert b'Please select an image file' in response.data
    assert stored_files(app) == []
    with app.app_context():
        assert GalleryImage.query.count() == 0


def test_gallery_missing_tag_leaves_no_files(admin_client, app):
    data = {'image_files': [(io.BytesIO(PNG), 'one.png')]}
    admin_client.post('/admin/gallery/new', data=data, content_type='multipart/form-data')
    assert stored_files(app) == []


def test_failed_commit_discards_upload(admin_client, app, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError('disk full')

    monkeypatch.setattr(db.session, 'commit', broken_commit)
    data = {'title': 'Camps', 'description': 'x', 'category': 'awareness', 'status': 'planned',
            'image_file': (io.BytesIO(PNG), 'camp.png')}
    response = admin_client.post('/admin/projects/new', data=data, content_type='multipart/form-data')
    assert b'disk full' in response.data
    assert stored_files(app) == []


def test_gallery_delete(admin_client, app):
    with app.app_context():
        image = GalleryImage(image_url='https://cdn.example.com/a.jpg', tag='walk')
        db.session.add(image)
        db.session.commit()
        image_id = image.id
    admin_client.post(f'/admin/gallery/{image_id}/delete')
    with app.app_context():
        assert GalleryImage.query.count() == 0


# --- Awareness resources ---

def test_add_resource_detects_file_type(admin_client, client, app):
    data = {'title': 'Screening Guide', 'category': 'Screening Guidelines', 'description': '',
            'file': (io.BytesIO(b'%PDF-1.4 guide'), 'guide.pdf')}
    admin_client.post('/admin/resources/new', data=data, content_type='multipart/form-data')

    with app.app_context():
        resource = AwarenessResource.query.one()
        assert resource.file_type == 'PDF'
        assert resource.description is None
        file_url = resource.file_url

    response = client.get(file_url)
    assert response.status_code == 200
    assert response.data == b'%PDF-1.4 guide'


def test_add_resource_requires_file(admin_client, app):
    response = admin_client.post('/admin/resources/new', data={'title': 'Guide', 'category': 'General'},
                                 follow_redirects=True)
    assert b'Please upload a file' in response.data
    with app.app_context():
        assert AwarenessResource.query.count() == 0


# --- Volunteers ---

def test_volunteer_status_update_and_counts(admin_client, app):
    with app.app_context():
        application = VolunteerApplication(name='Ann Lee', email='ann@example.com', phone='555',
                                           availability='Weekends', interests='Event Coordinator')
        db.session.add(application)
        db.session.commit()
        application_id = application.id

    assert b'Pending (1)' in admin_client.get('/admin/volunteers').data

    admin_client.post(f'/admin/volunteers/{application_id}/status', data={'status': 'approved'})
    with app.app_context():
        assert db.session.get(VolunteerApplication, application_id).status == 'approved'

    body = admin_client.get('/admin/volunteers?status=pending').data
    assert b'Ann Lee' not in body
    assert b'Approved (1)' in body
