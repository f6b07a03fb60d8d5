"""create facturacion tables

Revision ID: 2026_10_17_facturacion
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision = '2026_10_17_facturacion'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """
    Crea las tablas de adquirientes (formato OpenETL) y la auditoría de
    llamadas al proveedor tecnológico.
    """

    # Tabla: acquirer
    op.create_table(
        'acquirer',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('ofe_identificacion', sa.String(length=20), nullable=False, comment='NIT del OFE sin DV'),
        sa.Column('adq_identificacion', sa.String(length=20), nullable=False, comment='NIT del adquiriente sin DV'),
        sa.Column('adq_id_personalizado', sa.String(length=100), nullable=True),
        sa.Column('adq_razon_social', sa.String(length=255), nullable=False),
        sa.Column('adq_nombre_comercial', sa.String(length=255), nullable=True),
        sa.Column('tdo_codigo', sa.String(length=10), nullable=False, comment='Tipo de documento (31 = NIT)'),
        sa.Column('toj_codigo', sa.String(length=10), nullable=False,
                  comment='Tipo de organización jurídica (1 jurídica, 2 natural)'),
        sa.Column('pai_codigo', sa.String(length=10), nullable=False),
        sa.Column('dep_codigo', sa.String(length=10), nullable=True),
        sa.Column('dep_nombre', sa.String(length=255), nullable=True),
        sa.Column('mun_codigo', sa.String(length=10), nullable=True),
        sa.Column('mun_nombre', sa.String(length=255), nullable=True),
        sa.Column('cpo_codigo', sa.String(length=10), nullable=True),
        sa.Column('adq_direccion', sa.String(length=255), nullable=True),
        sa.Column('adq_telefono', sa.String(length=20), nullable=True),
        sa.Column('pai_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('dep_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('dep_nombre_domicilio_fiscal', sa.String(length=255), nullable=True),
        sa.Column('mun_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('mun_nombre_domicilio_fiscal', sa.String(length=255), nullable=True),
        sa.Column('cpo_codigo_domicilio_fiscal', sa.String(length=10), nullable=True),
        sa.Column('adq_direccion_domicilio_fiscal', sa.String(length=255), nullable=True),
        sa.Column('adq_nombre_contacto', sa.String(length=255), nullable=True),
        sa.Column('adq_fax', sa.String(length=20), nullable=True),
        sa.Column('adq_notas', sa.Text(), nullable=True),
        sa.Column('adq_correo', sa.String(length=255), nullable=True),
        sa.Column('adq_correos_notificacion', sa.Text(), nullable=True, comment='Correos separados por coma'),
        sa.Column('adq_matricula_mercantil', sa.String(length=50), nullable=True),
        sa.Column('rfi_codigo', sa.String(length=10), nullable=True),
        sa.Column('ref_codigo', mysql.JSON(), nullable=True, comment='Responsabilidades fiscales'),
        sa.Column('responsable_tributos', mysql.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ofe_identificacion', 'adq_identificacion', 'adq_id_personalizado',
                            name='uq_acquirer_ofe_adq_personalizado')
    )

    # Índices para acquirer
    op.create_index('ix_acquirer_ofe_identificacion', 'acquirer', ['ofe_identificacion'])
    op.create_index('ix_acquirer_adq_identificacion', 'acquirer', ['adq_identificacion'])
    op.create_index('idx_acquirer_ofe_adq', 'acquirer', ['ofe_identificacion', 'adq_identificacion'])

    # Tabla: acquirer_contact
    op.create_table(
        'acquirer_contact',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('acquirer_id', sa.BigInteger(), nullable=False),
        sa.Column('con_nombre', sa.String(length=255), nullable=False),
        sa.Column('con_direccion', sa.String(length=255), nullable=True),
        sa.Column('con_telefono', sa.String(length=20), nullable=True),
        sa.Column('con_correo', sa.String(length=255), nullable=True),
        sa.Column('con_observaciones', sa.Text(), nullable=True),
        sa.Column('con_tipo', sa.String(length=50), nullable=False,
                  comment='AccountingContact | DeliveryContact | BuyerContact'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['acquirer_id'], ['acquirer.id'], ondelete='CASCADE')
    )
    op.create_index('ix_acquirer_contact_acquirer_id', 'acquirer_contact', ['acquirer_id'])

    # Tabla: provider_audit_log
    op.create_table(
        'provider_audit_log',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('correlation_id', sa.String(length=255), nullable=False),
        sa.Column('provider', sa.String(length=100), nullable=False),
        sa.Column('operation', sa.String(length=100), nullable=False),
        sa.Column('request_method', sa.String(length=10), nullable=False),
        sa.Column('request_url', sa.Text(), nullable=False),
        sa.Column('request_headers', mysql.JSON(), nullable=True),
        sa.Column('request_body', mysql.JSON(), nullable=True),
        sa.Column('response_status', sa.Integer(), nullable=True),
        sa.Column('response_headers', mysql.JSON(), nullable=True),
        sa.Column('response_body', mysql.JSON(), nullable=True),
        sa.Column('duration_ms', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Índices para provider_audit_log
    op.create_index('ix_provider_audit_log_correlation_id', 'provider_audit_log', ['correlation_id'])
    op.create_index('ix_provider_audit_log_response_status', 'provider_audit_log', ['response_status'])
    op.create_index('ix_provider_audit_log_created_at', 'provider_audit_log', ['created_at'])
    op.create_index('idx_provider_operation', 'provider_audit_log', ['provider', 'operation'])


def downgrade():
    """
    Elimina las tablas de adquirientes y de auditoría del proveedor.
    """
    op.drop_table('provider_audit_log')
    op.drop_table('acquirer_contact')
    op.drop_table('acquirer')
