"""add transfers between accounts

Revision ID: 202511021400
Revises: 202510101300
Create Date: 2025-11-02 14:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202511021400"
down_revision = "202510101300"
branch_labels = None
depends_on = None


OLD_TYPE = sa.Enum("income", "expense", name="transactiontype")
NEW_TYPE = sa.Enum("income", "expense", "transfer", name="transactiontype")


def upgrade():
    with op.batch_alter_table("transactions") as batch:
        batch.alter_column("type", existing_type=OLD_TYPE, type_=NEW_TYPE)
        batch.add_column(
            sa.Column(
                "destination_account_id",
                sa.Integer(),
                sa.ForeignKey("accounts.id", name="fk_transactions_destination"),
            )
        )
        batch.add_column(
            sa.Column(
                "transfer_pair_id",
                sa.Integer(),
                sa.ForeignKey("transactions.id", name="fk_transactions_pair"),
            )
        )
        batch.create_check_constraint(
            "ck_transactions_transfer_destination",
            "(type = 'transfer' AND destination_account_id IS NOT NULL)"
            " OR (type != 'transfer' AND destination_account_id IS NULL)",
        )


def downgrade():
    op.execute("DELETE FROM transaction_tags WHERE transaction_id IN "
               "(SELECT id FROM transactions WHERE type = 'transfer')")
    op.execute("UPDATE transactions SET transfer_pair_id = NULL")
    op.execute("DELETE FROM transactions WHERE type = 'transfer'")
    with op.batch_alter_table("transactions") as batch:
        batch.drop_constraint("ck_transactions_transfer_destination", type_="check")
        batch.drop_column("transfer_pair_id")
        batch.drop_column("destination_account_id")
        batch.alter_column("type", existing_type=NEW_TYPE, type_=OLD_TYPE)
