# models.py
import copy
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask import current_app
from itsdangerous import URLSafeTimedSerializer as Serializer, BadData
from services.letters import DraftStatus

db = SQLAlchemy()

DRAFT_STATUSES = tuple(status.value for status in DraftStatus)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(20))
    # Set by an admin (flask approve-user) when REQUIRE_ACCOUNT_APPROVAL is on
    verify_account = db.Column(db.Boolean, nullable=False, default=False)
    admin = db.Column(db.Boolean, nullable=False, default=False)
    is_held = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def get_auth_token(self):
        s = Serializer(current_app.config['SECRET_KEY'], salt='auth-token')
        return s.dumps({'user_id': self.id})

    @staticmethod
    def verify_auth_token(token, max_age=None):
        if max_age is None:
            max_age = current_app.config.get('TOKEN_MAX_AGE', 3600)
        s = Serializer(current_app.config['SECRET_KEY'], salt='auth-token')
        try:
            user_id = s.loads(token, max_age=max_age)['user_id']
        except (BadData, KeyError, TypeError):
            return None
        return db.session.get(User, user_id)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'verify_account': self.verify_account,
            'admin': self.admin,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Business(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.String(40))
    email = db.Column(db.String(120))
    website = db.Column(db.String(255))
    # Letterhead images: absolute URLs or same-origin upload paths
    header_image = db.Column(db.String(1024))
    footer_image = db.Column(db.String(1024))
    seal_url = db.Column(db.String(1024))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    owner = db.relationship('User', backref=db.backref('businesses', lazy=True,
                                                       cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'website': self.website,
            'header_image': self.header_image,
            'footer_image': self.footer_image,
            'seal_url': self.seal_url,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Business {self.name}>'


class Recipient(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    contact_person = db.Column(db.String(200))
    address = db.Column(db.Text, nullable=False)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(40))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    owner = db.relationship('User', backref=db.backref('recipients', lazy=True,
                                                       cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_person': self.contact_person,
            'address': self.address,
            'email': self.email,
            'phone': self.phone,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def __repr__(self):
        return f'<Recipient {self.name}>'


class Draft(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey('business.id', ondelete='SET NULL'))
    recipient_id = db.Column(db.Integer, db.ForeignKey('recipient.id', ondelete='SET NULL'))
    ref_no = db.Column(db.String(100))
    date = db.Column(db.Date)
    subject = db.Column(db.String(500))
    content = db.Column(db.Text)
    status = db.Column(db.String(10), nullable=False, default='DRAFT')
    include_seal = db.Column(db.Boolean, nullable=False, default=False)
    # Slot positions, stored exactly as the editor sent them
    layout = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    owner = db.relationship('User', backref=db.backref('drafts', lazy=True,
                                                       cascade='all, delete-orphan'))
    business = db.relationship('Business', backref=db.backref('drafts', lazy=True))
    recipient = db.relationship('Recipient', backref=db.backref('drafts', lazy=True))

    @property
    def is_final(self):
        return self.status == 'FINAL'

    def clone(self):
        """Copy this draft as a new DRAFT with the same layout."""
        return Draft(
            user_id=self.user_id,
            business_id=self.business_id,
            recipient_id=self.recipient_id,
            ref_no=self.ref_no,
            date=self.date,
            subject=f"{self.subject or ''} (Copy)".strip(),
            content=self.content,
            status='DRAFT',
            include_seal=self.include_seal,
            layout=copy.deepcopy(self.layout),
        )

    def to_dict(self, populate=False):
        data = {
            'id': self.id,
            'business_id': self.business_id,
            'recipient_id': self.recipient_id,
            'ref_no': self.ref_no,
            'date': _iso(self.date),
            'subject': self.subject,
            'content': self.content,
            'status': self.status,
            'include_seal': self.include_seal,
            'layout': self.layout,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if populate:
            data['business'] = self.business.to_dict() if self.business else None
            data['recipient'] = self.recipient.to_dict() if self.recipient else None
        return data

    def __repr__(self):
        return f'<Draft {self.id} {self.status}>'
