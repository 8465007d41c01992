"""Create profiles and brain_dumps

Revision ID: 0001
Revises:
Create Date: 2026-10-18

- profiles: one row per user, subscription state and daily dump counter
- brain_dumps: categorized thoughts
- updated_at triggers
- On Supabase (auth schema present): auth.users foreign keys, RLS
  policies, handle_new_user trigger and the realtime publication
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _on_supabase(sql: str) -> None:
    """Run ``sql`` only when the Supabase auth schema exists."""
    op.execute(f"""
        DO $migration$
        BEGIN
            IF EXISTS (SELECT 1 FROM pg_namespace WHERE nspname = 'auth') THEN
                EXECUTE $sql${sql}$sql$;
            END IF;
        END
        $migration$
    """)


def upgrade() -> None:
    # =========================================================================
    # 1. TABLES
    # =========================================================================
    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, unique=True, index=True),
        sa.Column('display_name', sa.String(100)),
        sa.Column('avatar_url', sa.Text),
        sa.Column('subscription_status', sa.String(20), server_default='free', nullable=False),
        sa.Column('subscription_end', sa.DateTime(timezone=True)),
        sa.Column('paypal_subscription_id', sa.Text),
        sa.Column('last_dump_date', sa.Date),
        sa.Column('daily_dump_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("subscription_status IN ('free', 'premium')", name='profiles_subscription_status_check'),
        sa.CheckConstraint('daily_dump_count >= 0', name='profiles_daily_dump_count_check'),
    )

    op.create_table(
        'brain_dumps',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('text', sa.Text, nullable=False),
        sa.Column('category', sa.Text, server_default='note', nullable=False),
        sa.Column('completed', sa.Boolean, server_default='false', nullable=False),
        sa.Column('tags', postgresql.ARRAY(sa.Text)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("length(category) > 0", name='brain_dumps_category_not_empty'),
    )
    op.create_index('ix_brain_dumps_user_created', 'brain_dumps', ['user_id', sa.text('created_at DESC')])

    # =========================================================================
    # 2. UPDATED_AT TRIGGERS
    # =========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION public.update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
    """)
    for table in ('profiles', 'brain_dumps'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON public.{table}
            FOR EACH ROW EXECUTE FUNCTION public.update_updated_at_column()
        """)

    # =========================================================================
    # 3. SUPABASE: FOREIGN KEYS + RLS
    # =========================================================================
    _on_supabase(
        "ALTER TABLE public.profiles ADD CONSTRAINT profiles_user_id_fkey "
        "FOREIGN KEY (user_id) REFERENCES auth.users(id) ON DELETE CASCADE"
    )
    _on_supabase(
        "ALTER TABLE public.brain_dumps ADD CONSTRAINT brain_dumps_user_id_fkey "
        "FOREIGN KEY (user_id) REFERENCES auth.users(id) ON DELETE CASCADE"
    )

    op.execute("ALTER TABLE public.profiles ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE public.brain_dumps ENABLE ROW LEVEL SECURITY")

    _on_supabase(
        "CREATE POLICY profiles_select_policy ON public.profiles "
        "FOR SELECT USING (user_id = auth.uid())"
    )
    _on_supabase(
        "CREATE POLICY profiles_insert_policy ON public.profiles "
        "FOR INSERT WITH CHECK (user_id = auth.uid())"
    )
    _on_supabase(
        "CREATE POLICY profiles_update_policy ON public.profiles "
        "FOR UPDATE USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid())"
    )

    for action, clause in (
        ('select', 'FOR SELECT USING (user_id = auth.uid())'),
        ('insert', 'FOR INSERT WITH CHECK (user_id = auth.uid())'),
        ('update', 'FOR UPDATE USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid())'),
        ('delete', 'FOR DELETE USING (user_id = auth.uid())'),
    ):
        _on_supabase(f"CREATE POLICY brain_dumps_{action}_policy ON public.brain_dumps {clause}")

    # =========================================================================
    # 4. SUPABASE: PROFILE ON SIGN-UP
    # =========================================================================
    _on_supabase("""
        CREATE OR REPLACE FUNCTION public.handle_new_user()
        RETURNS TRIGGER
        LANGUAGE plpgsql
        SECURITY DEFINER SET search_path = 'public'
        AS $fn$
        BEGIN
            INSERT INTO public.profiles (user_id, display_name)
            VALUES (new.id, new.raw_user_meta_data->>'display_name')
            ON CONFLICT (user_id) DO NOTHING;
            RETURN new;
        END;
        $fn$
    """)
    _on_supabase("DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users")
    _on_supabase(
        "CREATE TRIGGER on_auth_user_created AFTER INSERT ON auth.users "
        "FOR EACH ROW EXECUTE FUNCTION public.handle_new_user()"
    )

    # =========================================================================
    # 5. SUPABASE: REALTIME
    # =========================================================================
    op.execute("ALTER TABLE public.brain_dumps REPLICA IDENTITY FULL")
    op.execute("""
        DO $$
        BEGIN
            IF EXISTS (SELECT 1 FROM pg_publication WHERE pubname = 'supabase_realtime') THEN
                ALTER PUBLICATION supabase_realtime ADD TABLE public.brain_dumps;
            END IF;
        END
        $$
    """)


def downgrade() -> None:
    op.execute("""
        DO $$
        BEGIN
            IF EXISTS (SELECT 1 FROM pg_publication WHERE pubname = 'supabase_realtime') THEN
                ALTER PUBLICATION supabase_realtime DROP TABLE public.brain_dumps;
            END IF;
        END
        $$
    """)
    _on_supabase("DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users")
    op.execute("DROP FUNCTION IF EXISTS public.handle_new_user()")

    op.drop_index('ix_brain_dumps_user_created', table_name='brain_dumps')
    op.drop_table('brain_dumps')
    op.drop_table('profiles')
    op.execute("DROP FUNCTION IF EXISTS public.update_updated_at_column()")
