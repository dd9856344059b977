"""add_referral_procedures

Revision ID: 8c5e2f71d3a4
Revises: 4b1d7e9a2c10
Create Date: 2026-09-28 11:02:07.644915

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c5e2f71d3a4"
down_revision: str | Sequence[str] | None = "4b1d7e9a2c10"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add the referral procedures, the signup trigger and RLS on profiles.

    The backend repository calls validate_referral_code, apply_referral and
    create_profile; direct Supabase clients and the auth.users trigger use
    the same functions.
    """
    # --- Referral code generator ---
    op.execute("""
        CREATE OR REPLACE FUNCTION generate_referral_code()
        RETURNS TEXT
        LANGUAGE plpgsql
        VOLATILE
        AS $$
        DECLARE
            alphabet CONSTANT TEXT := 'abcdefghjkmnpqrstuvwxyz23456789';
            code TEXT;
        BEGIN
            LOOP
                code := '';
                FOR i IN 1..8 LOOP
                    code := code || substr(alphabet, 1 + floor(random() * length(alphabet))::INT, 1);
                END LOOP;
                EXIT WHEN NOT EXISTS (
                    SELECT 1 FROM public.profiles WHERE lower(referral_code) = code
                );
            END LOOP;
            RETURN code;
        END;
        $$;
    """)

    # --- validate_referral_code(code) -> referrer id or NULL ---
    op.execute("""
        CREATE OR REPLACE FUNCTION validate_referral_code(code TEXT)
        RETURNS UUID
        LANGUAGE sql
        SECURITY DEFINER
        STABLE
        SET search_path = public
        AS $$
            SELECT id FROM profiles WHERE lower(referral_code) = lower(trim(code)) LIMIT 1;
        $$;
    """)

    # --- apply_referral: link once, count once, one transaction ---
    op.execute("""
        CREATE OR REPLACE FUNCTION apply_referral(new_user_id UUID, referrer_id UUID)
        RETURNS BOOLEAN
        LANGUAGE plpgsql
        SECURITY DEFINER
        SET search_path = public
        AS $$
        BEGIN
            IF new_user_id = referrer_id THEN
                RETURN FALSE;
            END IF;

            UPDATE profiles
               SET referred_by = referrer_id, updated_at = now()
             WHERE id = new_user_id AND referred_by IS NULL;
            IF NOT FOUND THEN
                RETURN FALSE;
            END IF;

            UPDATE profiles
               SET referral_count = referral_count + 1, updated_at = now()
             WHERE id = referrer_id;
            IF NOT FOUND THEN
                RAISE EXCEPTION 'referrer % not found', referrer_id;
            END IF;

            RETURN TRUE;
        END;
        $$;
    """)

    # --- create_profile: idempotent, never overwrites an existing row ---
    op.execute("""
        CREATE OR REPLACE FUNCTION create_profile(
            user_id UUID, user_email TEXT, user_name TEXT, user_phone TEXT
        )
        RETURNS SETOF profiles
        LANGUAGE plpgsql
        SECURITY DEFINER
        SET search_path = public
        AS $$
        BEGIN
            INSERT INTO profiles (id, email, name, phone, referral_code)
            VALUES (user_id, coalesce(user_email, ''), user_name, user_phone, generate_referral_code())
            ON CONFLICT (id) DO NOTHING;
            RETURN QUERY SELECT * FROM profiles WHERE id = user_id;
        END;
        $$;
    """)

    # --- Signup trigger on auth.users ---
    op.execute("""
        CREATE OR REPLACE FUNCTION handle_new_user()
        RETURNS TRIGGER
        LANGUAGE plpgsql
        SECURITY DEFINER
        SET search_path = public
        AS $$
        BEGIN
            PERFORM create_profile(
                NEW.id,
                NEW.email,
                NEW.raw_user_meta_data ->> 'name',
                NEW.raw_user_meta_data ->> 'phone'
            );
            RETURN NEW;
        END;
        $$;
    """)
    op.execute("""
        CREATE TRIGGER on_auth_user_created
            AFTER INSERT ON auth.users
            FOR EACH ROW EXECUTE FUNCTION handle_new_user();
    """)

    # --- Row Level Security ---
    op.execute("ALTER TABLE profiles ENABLE ROW LEVEL SECURITY;")
    # SELECT: members read their own row and the rows they referred
    op.execute("""
        CREATE POLICY profiles_select ON profiles
            FOR SELECT USING (
                id = (SELECT auth.uid())
                OR referred_by = (SELECT auth.uid())
            );
    """)
    # UPDATE: own row only; counts and links change through apply_referral
    op.execute("""
        CREATE POLICY profiles_update ON profiles
            FOR UPDATE USING (id = (SELECT auth.uid()))
            WITH CHECK (id = (SELECT auth.uid()));
    """)
    op.execute("""
        CREATE POLICY profiles_insert ON profiles
            FOR INSERT WITH CHECK (id = (SELECT auth.uid()));
    """)


def downgrade() -> None:
    """Remove RLS, the trigger and the referral procedures."""
    for policy in ["profiles_insert", "profiles_update", "profiles_select"]:
        op.execute(f"DROP POLICY IF EXISTS {policy} ON profiles;")
    op.execute("ALTER TABLE profiles DISABLE ROW LEVEL SECURITY;")

    op.execute("DROP TRIGGER IF EXISTS on_auth_user_created ON auth.users;")
    op.execute("DROP FUNCTION IF EXISTS handle_new_user();")
    op.execute("DROP FUNCTION IF EXISTS create_profile(UUID, TEXT, TEXT, TEXT);")
    op.execute("DROP FUNCTION IF EXISTS apply_referral(UUID, UUID);")
    op.execute("DROP FUNCTION IF EXISTS validate_referral_code(TEXT);")
    op.execute("DROP FUNCTION IF EXISTS generate_referral_code();")
