"""create provider table

Revision ID: 2026_10_17_provider
Revises: 2026_10_17_facturacion
Create Date: 2026-10-17 15:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision = '2026_10_17_provider'
down_revision = '2026_10_17_facturacion'
branch_labels = None
depends_on = None


def upgrade():
    """
    Crea la tabla de proveedores (formato OpenETL) usada por Documento Soporte.
    """
    op.create_table(
        'provider',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('ofe_identificacion', sa.String(length=20), nullable=False, comment='NIT del OFE sin DV'),
        sa.Column('pro_identificacion', sa.String(length=20), nullable=False, comment='NIT del proveedor sin DV'),
        sa.Column('pro_id_personalizado', sa.String(length=100), nullable=True),
        sa.Column('pro_razon_social', sa.String(length=255), nullable=True),
        sa.Column('pro_nombre_comercial', sa.String(length=255), nullable=True),
        sa.Column('pro_primer_apellido', sa.String(length=100), nullable=True),
        sa.Column('pro_segundo_apellido', sa.String(length=100), nullable=True),
        sa.Column('pro_primer_nombre', sa.String(length=100), nullable=True),
        sa.Column('pro_otros_nombres', sa.String(length=100), nullable=True),
        sa.Column('tdo_codigo', sa.String(length=10), nullable=False),
        sa.Column('toj_codigo', sa.String(length=10), nullable=False,
                  comment='1 persona jurídica, 2 persona natural'),
        sa.Column('pai_codigo', sa.String(length=10), nullable=True),
        sa.Column('dep_codigo', sa.String(length=10), nullable=True),
        sa.Column('mun_codigo', sa.String(length=10), nullable=True),
        sa.Column('cpo_codigo', sa.String(length=10), nullable=True),
        sa.Column('pro_direccion', sa.String(length=255), nullable=True),
        sa.Column('pro_telefono', sa.String(length=50), nullable=True),
        sa.Column('pai_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('dep_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('mun_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('cpo_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('pro_direccion_domicilio_fiscal', sa.String(length=255), nullable=True),
        sa.Column('pro_correo', sa.String(length=255), nullable=False),
        sa.Column('pro_correos_notificacion', sa.Text(), nullable=True, comment='Correos separados por coma'),
        sa.Column('pro_matricula_mercantil', sa.String(length=100), nullable=True),
        sa.Column('pro_usuarios_recepcion', mysql.JSON(), nullable=True,
                  comment='Usuarios que reciben sus documentos'),
        sa.Column('rfi_codigo', sa.String(length=10), nullable=True),
        sa.Column('ref_codigo', mysql.JSON(), nullable=True, comment='Responsabilidades fiscales'),
        sa.Column('estado', sa.String(length=20), nullable=False, server_default='ACTIVO'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ofe_identificacion', 'pro_identificacion', 'pro_id_personalizado',
                            name='uq_provider_ofe_pro_personalizado')
    )

    op.create_index('ix_provider_ofe_identificacion', 'provider', ['ofe_identificacion'])
    op.create_index('ix_provider_pro_identificacion', 'provider', ['pro_identificacion'])
    op.create_index('ix_provider_pro_razon_social', 'provider', ['pro_razon_social'])
    op.create_index('ix_provider_pro_nombre_comercial', 'provider', ['pro_nombre_comercial'])
    op.create_index('ix_provider_estado', 'provider', ['estado'])
    op.create_index('idx_provider_ofe_pro', 'provider', ['ofe_identificacion', 'pro_identificacion'])


def downgrade():
    op.drop_table('provider')
