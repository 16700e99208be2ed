"""create_reclamos_schema

Revision ID: 20261019_0900_reclamos
Revises:
Create Date: 2026-10-19 09:00:00.000000

Esquema inicial de la API de reclamos:
- users (clientes y abogados)
- consultas (formulario de contacto)
- reclamos + timeline, mensajes y archivos (append-only, ON DELETE CASCADE)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_0900_reclamos'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # =========================================================
    # USERS
    # =========================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Email en minúsculas'),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, comment='cliente | abogado'),
        sa.Column('password_hash', sa.String(length=255), nullable=False, comment='Hash bcrypt'),
        sa.Column('telefono', sa.String(length=64), nullable=True),
        sa.Column('dni', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # =========================================================
    # CONSULTAS
    # =========================================================
    op.create_table(
        'consultas',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('nombre', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('mensaje', sa.Text(), nullable=False),
        sa.Column('consentimiento', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # =========================================================
    # RECLAMOS
    # =========================================================
    op.create_table(
        'reclamos',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('codigo', sa.String(length=32), nullable=False, comment='Número visible: PL-<año>-<4 dígitos>'),
        sa.Column('owner_email', sa.String(length=255), nullable=False, comment='Email del cliente dueño'),
        sa.Column('entidad', sa.String(length=255), nullable=False),
        sa.Column('monto', sa.Float(), nullable=True, comment='Nulo hasta que el estudio lo fija'),
        sa.Column('estado', sa.String(length=64), nullable=False),
        sa.Column('tipo', sa.String(length=64), nullable=False),
        sa.Column('descripcion', sa.Text(), nullable=True),
        sa.Column('fecha_incidente', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sla_due', sa.DateTime(timezone=True), nullable=True, comment='Vencimiento SLA (UTC)'),
        sa.ForeignKeyConstraint(['owner_email'], ['users.email']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo', name='uq_reclamos_codigo'),
    )
    op.create_index('ix_reclamos_owner_email', 'reclamos', ['owner_email'])
    op.create_index('ix_reclamos_updated_at', 'reclamos', ['updated_at'])

    # =========================================================
    # SUB-COLECCIONES (append-only)
    # =========================================================
    op.create_table(
        'reclamo_timeline',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('reclamo_id', sa.String(length=36), nullable=False),
        sa.Column('fecha', sa.DateTime(timezone=True), nullable=False),
        sa.Column('hito', sa.Text(), nullable=False),
        sa.Column('tipo', sa.String(length=16), nullable=False, comment='ok | warn | info'),
        sa.ForeignKeyConstraint(['reclamo_id'], ['reclamos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reclamo_timeline_reclamo_fecha', 'reclamo_timeline', ['reclamo_id', 'fecha'])

    op.create_table(
        'reclamo_mensajes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('reclamo_id', sa.String(length=36), nullable=False),
        sa.Column('autor', sa.String(length=16), nullable=False, comment='Cliente | Estudio'),
        sa.Column('texto', sa.Text(), nullable=False),
        sa.Column('creado_en', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['reclamo_id'], ['reclamos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reclamo_mensajes_reclamo_creado', 'reclamo_mensajes', ['reclamo_id', 'creado_en'])

    op.create_table(
        'reclamo_archivos',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('reclamo_id', sa.String(length=36), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False, comment='Nombre generado por el servidor'),
        sa.Column('originalname', sa.String(length=255), nullable=False),
        sa.Column('mimetype', sa.String(length=128), nullable=False),
        sa.Column('url', sa.String(length=512), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False, comment='Bytes'),
        sa.ForeignKeyConstraint(['reclamo_id'], ['reclamos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('filename', name='uq_reclamo_archivos_filename'),
    )
    op.create_index('ix_reclamo_archivos_reclamo_id', 'reclamo_archivos', ['reclamo_id'])


def downgrade() -> None:
    op.drop_index('ix_reclamo_archivos_reclamo_id', table_name='reclamo_archivos')
    op.drop_table('reclamo_archivos')
    op.drop_index('ix_reclamo_mensajes_reclamo_creado', table_name='reclamo_mensajes')
    op.drop_table('reclamo_mensajes')
    op.drop_index('ix_reclamo_timeline_reclamo_fecha', table_name='reclamo_timeline')
    op.drop_table('reclamo_timeline')
    op.drop_index('ix_reclamos_updated_at', table_name='reclamos')
    op.drop_index('ix_reclamos_owner_email', table_name='reclamos')
    op.drop_table('reclamos')
    op.drop_table('consultas')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
