# This file is part of BirdWatch.
#
# BirdWatch is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# BirdWatch is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with BirdWatch.  If not, see <https://www.gnu.org/licenses/>.

"""Translation files for BirdWatch.

This package contains .ts (source) translation files and, once
compiled, the .qm files loaded at runtime.

Supported languages:
- fr (French / Français)

To add a new language:
1. Create birdwatch_{lang}.ts file (copy from birdwatch_fr.ts)
2. Translate strings in the .ts file
3. Compile: python scripts/compile_translations.py
"""

import os

TRANSLATIONS_PATH = os.path.dirname(__file__)
