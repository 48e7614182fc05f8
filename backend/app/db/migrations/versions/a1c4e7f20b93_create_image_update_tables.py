"""create image update tables

Revision ID: a1c4e7f20b93
Revises:
Create Date: 2025-11-04 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b93'
down_revision = None
branch_labels = None
depends_on = None


OPERATION_STATUS = ('pending', 'processing', 'completed', 'failed')
CSV_FILE_TYPE = ('template', 'upload', 'snapshot')
CSV_FILE_STATUS = ('pending', 'processed', 'archived')


def upgrade() -> None:
    op.create_table(
        'image_update_operations',
        sa.Column('operation_id', sa.String(length=64), nullable=False),
        sa.Column('shop_domain', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('user_name', sa.String(length=255), nullable=True),
        sa.Column('collection_id', sa.String(length=255), nullable=False),
        sa.Column('collection_name', sa.String(length=255), nullable=True),
        sa.Column('before_snapshot_key', sa.String(length=512), nullable=True),
        sa.Column('after_snapshot_key', sa.String(length=512), nullable=True),
        sa.Column(
            'status',
            sa.Enum(*OPERATION_STATUS, name='image_update_operation_status'),
            server_default='pending',
            nullable=False,
        ),
        sa.Column('products_count', sa.Integer(), nullable=False),
        sa.Column('images_updated', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('operation_id', name=op.f('pk_image_update_operations')),
    )
    op.create_index(op.f('ix_image_update_operations_shop_domain'), 'image_update_operations', ['shop_domain'])
    op.create_index(op.f('ix_image_update_operations_user_id'), 'image_update_operations', ['user_id'])
    op.create_index('ix_image_update_operations_shop_created', 'image_update_operations', ['shop_domain', 'created_at'])
    op.create_index('ix_image_update_operations_user_created', 'image_update_operations', ['user_id', 'created_at'])

    op.create_table(
        'image_update_csv_files',
        sa.Column('file_id', sa.String(length=64), nullable=False),
        sa.Column('operation_id', sa.String(length=64), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_type', sa.Enum(*CSV_FILE_TYPE, name='image_update_csv_file_type'), nullable=False),
        sa.Column('storage_key', sa.String(length=512), nullable=False),
        sa.Column('storage_bucket', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('record_count', sa.Integer(), nullable=False),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('uploaded_by', sa.String(length=128), nullable=True),
        sa.Column('checksum', sa.String(length=128), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*CSV_FILE_STATUS, name='image_update_csv_file_status'),
            server_default='pending',
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ['operation_id'], ['image_update_operations.operation_id'],
            name=op.f('fk_image_update_csv_files_operation_id_image_update_operations'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('file_id', name=op.f('pk_image_update_csv_files')),
    )
    op.create_index(op.f('ix_image_update_csv_files_operation_id'), 'image_update_csv_files', ['operation_id'])
    op.create_index('ix_image_update_csv_files_operation_type', 'image_update_csv_files', ['operation_id', 'file_type'])

    op.create_table(
        'image_update_blobs',
        sa.Column('key', sa.String(length=512), nullable=False),
        sa.Column('bucket', sa.String(length=255), nullable=False),
        sa.Column('content', sa.LargeBinary(), nullable=False),
        sa.Column('content_type', sa.String(length=128), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('checksum', sa.String(length=128), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('key', name=op.f('pk_image_update_blobs')),
    )


def downgrade() -> None:
    op.drop_table('image_update_blobs')

    op.drop_index('ix_image_update_csv_files_operation_type', table_name='image_update_csv_files')
    op.drop_index(op.f('ix_image_update_csv_files_operation_id'), table_name='image_update_csv_files')
    op.drop_table('image_update_csv_files')

    op.drop_index('ix_image_update_operations_user_created', table_name='image_update_operations')
    op.drop_index('ix_image_update_operations_shop_created', table_name='image_update_operations')
    op.drop_index(op.f('ix_image_update_operations_user_id'), table_name='image_update_operations')
    op.drop_index(op.f('ix_image_update_operations_shop_domain'), table_name='image_update_operations')
    op.drop_table('image_update_operations')

    sa.Enum(name='image_update_csv_file_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='image_update_csv_file_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='image_update_operation_status').drop(op.get_bind(), checkfirst=True)
