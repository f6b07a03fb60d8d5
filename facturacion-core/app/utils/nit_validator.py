"""
Utilidades de NIT colombianos (DIAN).

Los NITs llegan con o sin dígito de verificación y con puntos de miles
("860.011.153-6"). Para buscar adquirientes se compara siempre la parte
numérica sin DV.
"""

from typing import Optional


class NitValidator:
    """
    Cálculo del dígito verificador DIAN y normalización de NITs.

    Algoritmo: Módulo 11 (Orden Administrativa DIAN N°4 del 27/10/1989)
    """

    # Serie multiplicadora oficial DIAN
    MULTIPLIERS = [41, 37, 29, 23, 19, 17, 13, 7, 3]

    @staticmethod
    def calcular_digito_verificador(nit_sin_dv: str) -> str:
        """
        Calcula el dígito verificador (DV) de un NIT.

        Example:
            >>> NitValidator.calcular_digito_verificador("800185449")
            "9"

        Raises:
            ValueError: Si el NIT no es numérico o tiene más de 9 dígitos
        """
        nit_clean = nit_sin_dv.strip().replace(".", "")

        if not nit_clean.isdigit():
            raise ValueError(f"NIT debe contener solo dígitos. Recibido: '{nit_sin_dv}'")
        if len(nit_clean) > 9:
            raise ValueError(f"NIT no puede tener más de 9 dígitos. Recibido: '{nit_sin_dv}'")

        suma = sum(int(d) * m for d, m in zip(nit_clean.zfill(9), NitValidator.MULTIPLIERS))
        residuo = suma % 11
        return str(residuo if residuo in (0, 1) else 11 - residuo)

    @staticmethod
    def nit_sin_dv(nit: Optional[str]) -> str:
        """
        Parte numérica del NIT, sin puntos, espacios ni DV.

        "860.011.153-6" -> "860011153"; "900123456" -> "900123456".
        """
        if not nit:
            return ""
        nit_clean = nit.strip().replace(".", "").replace(" ", "")
        return nit_clean.split("-")[0]

    @staticmethod
    def dv_valido(nit: str) -> bool:
        """True si el NIT no trae DV o si el DV que trae es correcto."""
        nit_clean = nit.strip().replace(".", "").replace(" ", "")
        if "-" not in nit_clean:
            return True
        numero, _, dv = nit_clean.partition("-")
        try:
            return NitValidator.calcular_digito_verificador(numero) == dv
        except ValueError:
            return False

