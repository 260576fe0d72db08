"""create books and wishlists tables

Revision ID: create_books_wishlists_20251115
Revises:
Create Date: 2025-11-15
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_books_wishlists_20251115'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'books',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('author', sa.String(length=200), nullable=False),
        sa.Column('isbn', sa.String(length=13), nullable=False),
        sa.Column('published_year', sa.Integer(), nullable=False),
        sa.Column(
            'availability_status',
            sa.Enum('Available', 'Borrowed', name='availability_status', native_enum=False, length=20),
            nullable=False,
            server_default='Available',
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column(
            'active_isbn',
            sa.String(length=13),
            sa.Computed('CASE WHEN deleted_at IS NULL THEN isbn END'),
            nullable=True,
        ),
    )
    # 삭제되지 않은 행에 대해서만 ISBN 유일 (active_isbn 은 삭제 시 NULL)
    op.create_index('uq_books_isbn_active', 'books', ['active_isbn'], unique=True)
    op.create_index('ix_books_isbn', 'books', ['isbn'])
    op.create_index('ix_books_author', 'books', ['author'])
    op.create_index('ix_books_published_year', 'books', ['published_year'])
    op.create_index('ix_books_availability_status', 'books', ['availability_status'])
    op.create_index('ix_books_deleted_at', 'books', ['deleted_at'])

    op.create_table(
        'wishlists',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column(
            'book_id',
            sa.Integer(),
            sa.ForeignKey('books.id', ondelete='RESTRICT', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'book_id', name='uq_wishlist_user_book'),
    )
    op.create_index('ix_wishlists_user_id', 'wishlists', ['user_id'])
    op.create_index('ix_wishlists_book_id', 'wishlists', ['book_id'])


def downgrade():
    op.drop_index('ix_wishlists_book_id', table_name='wishlists')
    op.drop_index('ix_wishlists_user_id', table_name='wishlists')
    op.drop_table('wishlists')
    op.drop_index('ix_books_deleted_at', table_name='books')
    op.drop_index('ix_books_availability_status', table_name='books')
    op.drop_index('ix_books_published_year', table_name='books')
    op.drop_index('ix_books_author', table_name='books')
    op.drop_index('ix_books_isbn', table_name='books')
    op.drop_index('uq_books_isbn_active', table_name='books')
    op.drop_table('books')
